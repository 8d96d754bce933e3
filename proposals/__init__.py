"""
Proposals - Priced client offers, line-item approvals and conversion to projects.
"""
