"""
WSGI config for agencyops project.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'agencyops.settings')

application = get_wsgi_application()
