"""
Celery configuration for AgencyOps project.

This module configures Celery for async task processing with:
- Auto-discovery of tasks from all registered Django apps
- Task routing of notification e-mails to their own queue
"""

import os
from celery import Celery
from kombu import Exchange, Queue

# Set the default Django settings module for the 'celery' program.
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'agencyops.settings')

app = Celery('agencyops')

# - namespace='CELERY' means all celery-related configuration keys
#   should have a `CELERY_` prefix.
app.config_from_object('django.conf:settings', namespace='CELERY')

# Load task modules from all registered Django apps.
app.autodiscover_tasks()


# ==================== QUEUE CONFIGURATION ====================

default_exchange = Exchange('default', type='direct')
emails_exchange = Exchange('emails', type='direct')

app.conf.task_queues = (
    Queue('default', default_exchange, routing_key='default'),
    Queue('emails', emails_exchange, routing_key='emails'),
)

app.conf.task_default_queue = 'default'
app.conf.task_default_exchange = 'default'
app.conf.task_default_routing_key = 'default'


# ==================== TASK ROUTING ====================

app.conf.task_routes = {
    'projects.tasks.send_assignment_notification': {'queue': 'emails'},
}
