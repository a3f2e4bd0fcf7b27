"""
Celery configuration for flightdesk.
"""

import os

from celery import Celery

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings.development')

app = Celery('flightdesk')

# All celery-related configuration keys use the CELERY_ prefix in Django settings
app.config_from_object('django.conf:settings', namespace='CELERY')

app.autodiscover_tasks()
