import os
import sys
from datetime import timedelta
from pathlib import Path
import dj_database_url

BASE_DIR = Path(__file__).resolve().parent.parent.parent

SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key')
DEBUG = os.getenv('DEBUG', '0') == '1'

ALLOWED_HOSTS = [h for h in os.getenv('ALLOWED_HOSTS', 'localhost,127.0.0.1').split(',') if h]
if DEBUG:
    for h in ('testserver',):
        if h not in ALLOWED_HOSTS:
            ALLOWED_HOSTS.append(h)

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'rest_framework',
    'corsheaders',
    'app',
    'accounts',
    'orgs',
    'grants',
    'proposals',
    'budgets',
    'awards',
    'documents',
    'narratives',
    'submissions',
    'workflows',
    'realtime',
    'analytics',
    'db_policies',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'whitenoise.middleware.WhiteNoiseMiddleware',
    'corsheaders.middleware.CorsMiddleware',
    'app.middleware.SanitizeJsonBodyMiddleware',
    'app.middleware.SecurityHeadersMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'accounts.middleware.RLSSessionMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'app.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [BASE_DIR / 'templates'],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'app.wsgi.application'

DATABASES = {
    'default': dj_database_url.parse(os.getenv('DATABASE_URL', f'sqlite:///{BASE_DIR / "db.sqlite3"}'), conn_max_age=600)
}

# manage.py test puts 'test' in argv; pytest-django imports settings with pytest already loaded
TESTING = 'test' in sys.argv or 'pytest' in sys.modules or os.getenv('DJANGO_ENV', '').lower().startswith('test')
if TESTING:
    DEBUG = True
    if 'testserver' not in ALLOWED_HOSTS:
        ALLOWED_HOSTS.append('testserver')

LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True

STATIC_URL = '/static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'
STORAGES = {
    'default': {'BACKEND': 'django.core.files.storage.FileSystemStorage'},
    'staticfiles': {'BACKEND': 'whitenoise.storage.CompressedManifestStaticFilesStorage'},
}
WHITENOISE_MAX_AGE = 31536000 if not DEBUG else 0

MEDIA_URL = '/media/'
MEDIA_ROOT = Path(os.getenv('MEDIA_ROOT', str(BASE_DIR / 'media')))

CORS_ALLOW_ALL_ORIGINS = True if os.getenv('CORS_ALLOW_ALL', '0') == '1' else False
CORS_ALLOWED_ORIGINS = [o for o in os.getenv('CORS_ALLOWED_ORIGINS', '').split(',') if o] if not CORS_ALLOW_ALL_ORIGINS else []
CORS_ALLOW_CREDENTIALS = os.getenv('CORS_ALLOW_CREDENTIALS', '0') == '1'
CSRF_TRUSTED_ORIGINS = [o for o in os.getenv('CSRF_TRUSTED_ORIGINS', '').split(',') if o]

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

SECURE_PROXY_SSL_HEADER = ('HTTP_X_FORWARDED_PROTO', 'https')
SECURE_SSL_REDIRECT = os.getenv('SECURE_SSL_REDIRECT', '1' if not DEBUG else '0') == '1'
SESSION_COOKIE_SECURE = os.getenv('SESSION_COOKIE_SECURE', '1' if not DEBUG else '0') == '1'
CSRF_COOKIE_SECURE = os.getenv('CSRF_COOKIE_SECURE', '1' if not DEBUG else '0') == '1'
SECURE_HSTS_SECONDS = int(os.getenv('SECURE_HSTS_SECONDS', '31536000' if not DEBUG else '0'))
SECURE_HSTS_INCLUDE_SUBDOMAINS = os.getenv('SECURE_HSTS_INCLUDE_SUBDOMAINS', '1' if not DEBUG else '0') == '1'
SECURE_HSTS_PRELOAD = os.getenv('SECURE_HSTS_PRELOAD', '1' if not DEBUG else '0') == '1'
SECURE_REFERRER_POLICY = os.getenv('SECURE_REFERRER_POLICY', 'strict-origin-when-cross-origin')

CSP_SCRIPT_SRC = [o for o in os.getenv('CSP_SCRIPT_SRC', '').split(',') if o]
CSP_STYLE_SRC = [o for o in os.getenv('CSP_STYLE_SRC', '').split(',') if o]
CSP_CONNECT_SRC = [o for o in os.getenv('CSP_CONNECT_SRC', '').split(',') if o]
CSP_ALLOW_INLINE_STYLES = os.getenv('CSP_ALLOW_INLINE_STYLES', '0') == '1'

SESSION_COOKIE_HTTPONLY = True
CSRF_COOKIE_HTTPONLY = True
SESSION_COOKIE_SAMESITE = os.getenv('SESSION_COOKIE_SAMESITE', 'Lax')
CSRF_COOKIE_SAMESITE = os.getenv('CSRF_COOKIE_SAMESITE', 'Lax')

REST_FRAMEWORK = {
    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.IsAuthenticated',
    ],
    'DEFAULT_AUTHENTICATION_CLASSES': [
        'rest_framework_simplejwt.authentication.JWTAuthentication',
        'rest_framework.authentication.SessionAuthentication',
    ],
    'DEFAULT_THROTTLE_CLASSES': [
        'rest_framework.throttling.UserRateThrottle',
        'rest_framework.throttling.AnonRateThrottle',
    ],
    'DEFAULT_THROTTLE_RATES': {
        'user': os.getenv('DRF_THROTTLE_USER', '100/min' if not TESTING else '10000/min'),
        'anon': os.getenv('DRF_THROTTLE_ANON', '20/min' if not TESTING else '10000/min'),
        'login': os.getenv('DRF_THROTTLE_LOGIN', '10/min'),
    },
    'EXCEPTION_HANDLER': 'app.errors.api_exception_handler',
    'COERCE_DECIMAL_TO_STRING': False,
    'DEFAULT_RENDERER_CLASSES': (
        ['rest_framework.renderers.JSONRenderer']
        if not DEBUG
        else [
            'rest_framework.renderers.JSONRenderer',
            'rest_framework.renderers.BrowsableAPIRenderer',
        ]
    ),
}

if not DEBUG:
    if SECRET_KEY == 'dev-secret-key':
        raise RuntimeError('SECURITY: SECRET_KEY must be set in production')
    if '*' in ALLOWED_HOSTS:
        raise RuntimeError('SECURITY: ALLOWED_HOSTS cannot include * in production')
    if CORS_ALLOW_ALL_ORIGINS:
        raise RuntimeError('SECURITY: CORS_ALLOW_ALL must be 0 in production')
    if not os.getenv('JWT_SIGNING_KEY'):
        raise RuntimeError('SECURITY: JWT_SIGNING_KEY must be set and distinct from SECRET_KEY in production')
    if os.getenv('JWT_SIGNING_KEY') == SECRET_KEY:
        raise RuntimeError('SECURITY: JWT_SIGNING_KEY must be different from SECRET_KEY for key rotation strategy')
    if os.getenv('WORKFLOW_ENGINE_URL') and not os.getenv('WORKFLOW_WEBHOOK_SECRET'):
        raise RuntimeError('SECURITY: WORKFLOW_WEBHOOK_SECRET must be set when WORKFLOW_ENGINE_URL is configured')

SIMPLE_JWT = {
    'ACCESS_TOKEN_LIFETIME': timedelta(minutes=int(os.getenv('JWT_ACCESS_MINUTES', '30'))),
    'REFRESH_TOKEN_LIFETIME': timedelta(days=int(os.getenv('JWT_REFRESH_DAYS', '7'))),
    'SIGNING_KEY': os.getenv('JWT_SIGNING_KEY', SECRET_KEY),
    'AUTH_HEADER_TYPES': ('Bearer',),
}

CELERY_BROKER_URL = os.getenv('REDIS_URL', '')
CELERY_RESULT_BACKEND = os.getenv('REDIS_URL', '')
CELERY_TASK_ALWAYS_EAGER = os.getenv('CELERY_TASK_ALWAYS_EAGER', '0') == '1'

# External workflow-automation engine
WORKFLOW_ENGINE_URL = os.getenv('WORKFLOW_ENGINE_URL', '').strip().rstrip('/')
WORKFLOW_WEBHOOK_SECRET = os.getenv('WORKFLOW_WEBHOOK_SECRET', '').strip()
WORKFLOW_ENGINE_TIMEOUT = float(os.getenv('WORKFLOW_ENGINE_TIMEOUT', '10'))
WORKFLOW_DISPATCH_ASYNC = os.getenv('WORKFLOW_DISPATCH_ASYNC', '0') == '1'
WORKFLOW_NOTIFY_INLINE = os.getenv('WORKFLOW_NOTIFY_INLINE', '0') == '1'

# Documents and avatars (object storage through default_storage)
FILE_UPLOAD_MAX_MEMORY_SIZE = int(os.getenv('FILE_UPLOAD_MAX_MEMORY_SIZE', str(10 * 1024 * 1024)))
DATA_UPLOAD_MAX_MEMORY_SIZE = int(os.getenv('DATA_UPLOAD_MAX_MEMORY_SIZE', str(10 * 1024 * 1024)))
DOCUMENT_MAX_BYTES = int(os.getenv('DOCUMENT_MAX_BYTES', str(25 * 1024 * 1024)))
DOCUMENT_ALLOWED_TYPES = [
    t.strip().lower()
    for t in os.getenv(
        'DOCUMENT_ALLOWED_TYPES',
        'application/pdf,'
        'application/vnd.openxmlformats-officedocument.wordprocessingml.document,'
        'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet,'
        'image/png,image/jpeg',
    ).split(',')
    if t.strip()
]
AVATAR_MAX_BYTES = int(os.getenv('AVATAR_MAX_BYTES', str(2 * 1024 * 1024)))
AVATAR_ALLOWED_TYPES = ['image/png', 'image/jpeg', 'image/webp']
SIGNED_URL_DEFAULT_EXPIRY = int(os.getenv('SIGNED_URL_DEFAULT_EXPIRY', '3600'))

# Realtime change feed (server-sent events)
REALTIME_QUEUE_SIZE = int(os.getenv('REALTIME_QUEUE_SIZE', '256'))
REALTIME_HEARTBEAT_SECONDS = int(os.getenv('REALTIME_HEARTBEAT_SECONDS', '30'))

ORG_INVITE_TTL_DAYS = int(os.getenv('ORG_INVITE_TTL_DAYS', '14'))
ORG_INVITES_PER_HOUR = int(os.getenv('ORG_INVITES_PER_HOUR', '20'))
FRONTEND_INVITE_URL_BASE = os.getenv('FRONTEND_INVITE_URL_BASE', '').strip()

INVITE_SENDER_DOMAIN = os.getenv('INVITE_SENDER_DOMAIN', '').strip()
DEFAULT_FROM_EMAIL = (
    (f'invites@{INVITE_SENDER_DOMAIN}' if INVITE_SENDER_DOMAIN else None)
    or (f"no-reply@{os.getenv('MAILGUN_DOMAIN', '').strip()}" if os.getenv('MAILGUN_DOMAIN', '').strip() else None)
    or 'no-reply@localhost'
)

PUBLIC_BASE_URL = os.getenv('PUBLIC_BASE_URL', '').strip()

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'plain': {'format': '%(asctime)s %(levelname)s %(name)s: %(message)s'},
    },
    'handlers': {
        'console': {'class': 'logging.StreamHandler', 'formatter': 'plain'},
    },
    'root': {'handlers': ['console'], 'level': os.getenv('LOG_LEVEL', 'INFO')},
}
