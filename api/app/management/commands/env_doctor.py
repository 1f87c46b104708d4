import os
from urllib.parse import urlparse

from django.conf import settings
from django.core.management.base import BaseCommand

REQUIRED_ALWAYS = [
    'SECRET_KEY',
    'PUBLIC_BASE_URL',
    'DATABASE_URL',
]

# These must differ for rotation strategy
DISTINCT_SECRET_PAIRS = [
    ('SECRET_KEY', 'JWT_SIGNING_KEY'),
    ('SECRET_KEY', 'WORKFLOW_WEBHOOK_SECRET'),
]

# A group's vars are required once any of its triggers is set
GROUPS = {
    'redis': {
        'vars': ['REDIS_URL'],
        'require_if': ['WORKFLOW_DISPATCH_ASYNC'],
    },
    'workflow_engine': {
        'vars': ['WORKFLOW_WEBHOOK_SECRET'],
        'require_if': ['WORKFLOW_ENGINE_URL'],
    },
    'mail': {
        'vars': ['DEFAULT_FROM_EMAIL'],
        'require_if': ['EMAIL_HOST'],
    },
}

# Flags whose "on" value is '1'; '0' counts as unset for triggers
BOOLEAN_TRIGGERS = {'WORKFLOW_DISPATCH_ASYNC'}

SECURITY_INVARIANTS = [
    ('ALLOWED_HOSTS', lambda v: '*' not in v.split(','), 'ALLOWED_HOSTS must not contain * in production'),
    ('CORS_ALLOW_ALL', lambda v: v in {'', '0', 'False', 'false', None}, 'CORS_ALLOW_ALL must be 0/empty in production'),
    ('WORKFLOW_NOTIFY_INLINE', lambda v: v in {'', '0'}, 'WORKFLOW_NOTIFY_INLINE blocks request threads; leave it off in production'),
]

URL_MUST_BE_HTTPS = ['PUBLIC_BASE_URL', 'WORKFLOW_ENGINE_URL']


class Command(BaseCommand):
    help = 'Validate environment configuration for common production pitfalls. Exits non-zero on failure.'

    def add_arguments(self, parser):
        parser.add_argument('--strict', action='store_true', help='Exit 2 instead of 1 on failure.')
        parser.add_argument('--debug', action='store_true', help='Print a non-secret variable snapshot.')

    def handle(self, *args, **options):
        errors: list[str] = []
        warnings: list[str] = []
        env = os.environ

        def get(name):
            return env.get(name)

        def triggered(name):
            value = get(name)
            if name in BOOLEAN_TRIGGERS:
                return value == '1'
            return bool(value)

        for var in REQUIRED_ALWAYS:
            if not get(var):
                errors.append(f'Missing required variable: {var}')

        for a, b in DISTINCT_SECRET_PAIRS:
            av, bv = get(a), get(b)
            if av and bv and av == bv:
                errors.append(f'{b} should differ from {a} for rotation safety')
        if not get('JWT_SIGNING_KEY'):
            errors.append('Missing required variable: JWT_SIGNING_KEY')

        for key, group in GROUPS.items():
            missing = [rv for rv in group['vars'] if not get(rv)]
            if not missing:
                continue
            for trigger in group['require_if']:
                if not triggered(trigger):
                    continue
                message = f"{trigger} is set but group '{key}' is missing {', '.join(missing)}"
                # debug runs only warn about incomplete groups
                (warnings if settings.DEBUG else errors).append(message)

        if not settings.DEBUG:
            for name, predicate, msg in SECURITY_INVARIANTS:
                val = get(name)
                if val is not None and not predicate(val):
                    errors.append(msg)

        for name in URL_MUST_BE_HTTPS:
            val = get(name)
            if not val:
                continue
            parsed = urlparse(val)
            if not parsed.scheme or not parsed.netloc:
                warnings.append(f'{name} is not a valid URL: {val}')
            elif parsed.scheme != 'https':
                warnings.append(f'{name} should be https (got: {val})')

        for w in warnings:
            self.stdout.write(self.style.WARNING(f'WARN: {w}'))
        if errors:
            for e in errors:
                self.stderr.write(self.style.ERROR(f'ERROR: {e}'))
            self.stderr.write(self.style.ERROR(f'env_doctor failed with {len(errors)} error(s).'))
            raise SystemExit(2 if options.get('strict') else 1)
        self.stdout.write(self.style.SUCCESS('env_doctor passed with no fatal errors.'))
        if options.get('debug'):
            self.stdout.write('DEBUG VAR SNAPSHOT:')
            for k in sorted(env):
                if any(marker in k for marker in ('SECRET', 'KEY', 'PASSWORD', 'TOKEN')):
                    continue
                if k.isupper():
                    self.stdout.write(f'  {k}={env[k]}')
