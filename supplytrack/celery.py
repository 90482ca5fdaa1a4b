"""
Celery application.
Broker and eager mode come from Django settings (CELERY_* namespace).
"""

import os
from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "supplytrack.settings_dev")

app = Celery("supplytrack")
app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()
