"""
Core - Shared infrastructure for the agency operations engine

This module provides foundational components used by every app:
- Abstract timestamped base model
- Due-date/time normalization (parse, combine, extract)
- Domain events published after commit
"""
