"""
Projects - Agency projects, tasks and per-person assignments.
"""
