"""
Projects app configuration.

This app manages the delivery side of the agency:
- Organizations, clients and their projects
- Tasks owned by a project or directly by an organization
- Team members and their per-task assignments
"""

from django.apps import AppConfig


class ProjectsConfig(AppConfig):
    """Configuration for the projects app."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'projects'
    verbose_name = 'Projects & Tasks'

    def ready(self):
        """Import event subscribers when app is ready."""
        import projects.signals  # noqa: F401
