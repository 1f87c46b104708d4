import tempfile
from pathlib import Path

from . import base

for k, v in base.__dict__.items():
    if k.isupper():
        globals()[k] = v

# Test overrides (executed when DJANGO_ENV=test, under pytest, or manage.py test sets 'test' in argv)
DEBUG = True
CELERY_TASK_ALWAYS_EAGER = True  # ensure tasks run inline for assertions
WORKFLOW_ENGINE_URL = ''
WORKFLOW_WEBHOOK_SECRET = ''
WORKFLOW_DISPATCH_ASYNC = False
WORKFLOW_NOTIFY_INLINE = True
MEDIA_ROOT = Path(tempfile.mkdtemp(prefix='grantflow-media-'))
PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']
STORAGES = {
    'default': {'BACKEND': 'django.core.files.storage.FileSystemStorage'},
    'staticfiles': {'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage'},
}
