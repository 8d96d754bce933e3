"""
Proposals app configuration.
"""

from django.apps import AppConfig


class ProposalsConfig(AppConfig):
    """Configuration for the proposals app."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'proposals'
    verbose_name = 'Proposals'
