from . import base

for k, v in base.__dict__.items():
    if k.isupper():
        globals()[k] = v

# Production overrides: base already enforces the security invariants when DEBUG is off
DEBUG = False
CELERY_TASK_ALWAYS_EAGER = False
