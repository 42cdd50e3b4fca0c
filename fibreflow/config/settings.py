"""
Django settings for the fibreflow project.

Everything environment-specific is read from environment variables. Without a
Supabase project reference the project runs against a local SQLite file, which
is also what the test suite uses.
"""
import os
from datetime import timedelta
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent.parent


def env_bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


SECRET_KEY = os.environ.get('SECRET_KEY', 'django-insecure-fibreflow-local-development-key')

DEBUG = env_bool('DEBUG', True)

ALLOWED_HOSTS = [h.strip() for h in os.environ.get('ALLOWED_HOSTS', 'localhost,127.0.0.1').split(',') if h.strip()]


INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'rest_framework',
    'django_filters',
    'fibreflow.core',
    'fibreflow.parties',
    'fibreflow.locations',
    'fibreflow.projects',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'fibreflow.config.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'fibreflow.config.wsgi.application'


# Database
#
# DB_CONNECTION_TYPE selects how we reach the hosted Postgres instance:
#   direct             - db.<ref>.supabase.co:5432, persistent connections
#   session_pooler     - pooler host on 5432, IPv4 friendly, persistent
#   transaction_pooler - pooler host on 6543, no session state between queries
# Anything else (or no SUPABASE_PROJECT_REF) falls back to SQLite.
SUPABASE_PROJECT_REF = os.environ.get('SUPABASE_PROJECT_REF', '')
SUPABASE_POOLER_HOST = os.environ.get('SUPABASE_POOLER_HOST', 'aws-0-eu-central-1.pooler.supabase.com')
DB_CONNECTION_TYPE = os.environ.get(
    'DB_CONNECTION_TYPE',
    'transaction_pooler' if SUPABASE_PROJECT_REF else 'sqlite',
)


def supabase_database(connection_type):
    database = {
        'ENGINE': 'django.db.backends.postgresql',
        'NAME': os.environ.get('DB_NAME', 'postgres'),
        'PASSWORD': os.environ.get('SUPABASE_DB_PASSWORD', ''),
        'OPTIONS': {'sslmode': 'require'},
        'CONN_MAX_AGE': int(os.environ.get('DB_CONN_MAX_AGE', '60')),
    }
    if connection_type == 'direct':
        database.update({
            'HOST': f'db.{SUPABASE_PROJECT_REF}.supabase.co',
            'PORT': '5432',
            'USER': 'postgres',
        })
    elif connection_type == 'session_pooler':
        database.update({
            'HOST': SUPABASE_POOLER_HOST,
            'PORT': '5432',
            'USER': f'postgres.{SUPABASE_PROJECT_REF}',
        })
    elif connection_type == 'transaction_pooler':
        # PgBouncer in transaction mode cannot hold cursors or prepared statements
        database.update({
            'HOST': SUPABASE_POOLER_HOST,
            'PORT': '6543',
            'USER': f'postgres.{SUPABASE_PROJECT_REF}',
            'CONN_MAX_AGE': 0,
            'DISABLE_SERVER_SIDE_CURSORS': True,
        })
    else:
        raise ValueError(f'Unknown DB_CONNECTION_TYPE: {connection_type}')
    return database


if DB_CONNECTION_TYPE == 'sqlite' or not SUPABASE_PROJECT_REF:
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': os.environ.get('SQLITE_PATH', str(BASE_DIR / 'db.sqlite3')),
        }
    }
else:
    DATABASES = {'default': supabase_database(DB_CONNECTION_TYPE)}


# Cache
REDIS_URL = os.environ.get('REDIS_URL')

if REDIS_URL:
    CACHES = {
        'default': {
            'BACKEND': 'django_redis.cache.RedisCache',
            'LOCATION': REDIS_URL,
            'OPTIONS': {
                'CLIENT_CLASS': 'django_redis.client.DefaultClient',
                # A cache outage should degrade to database reads, not errors
                'IGNORE_EXCEPTIONS': True,
            },
            'KEY_PREFIX': 'fibreflow',
        }
    }
else:
    CACHES = {
        'default': {
            'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
            'LOCATION': 'fibreflow-local',
        }
    }


AUTH_USER_MODEL = 'core.User'

AUTH_PASSWORD_VALIDATORS = [
    {'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator'},
    {'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator'},
    {'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator'},
    {'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator'},
]


REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': (
        'rest_framework_simplejwt.authentication.JWTAuthentication',
    ),
    'DEFAULT_PERMISSION_CLASSES': (
        'rest_framework.permissions.IsAuthenticated',
    ),
    'DEFAULT_FILTER_BACKENDS': (
        'django_filters.rest_framework.DjangoFilterBackend',
    ),
    'EXCEPTION_HANDLER': 'fibreflow.core.exceptions.api_exception_handler',
}

SIMPLE_JWT = {
    'ACCESS_TOKEN_LIFETIME': timedelta(minutes=int(os.environ.get('ACCESS_TOKEN_LIFETIME_MINUTES', '60'))),
    'REFRESH_TOKEN_LIFETIME': timedelta(days=int(os.environ.get('REFRESH_TOKEN_LIFETIME_DAYS', '7'))),
    'AUTH_HEADER_TYPES': ('Bearer',),
}


# Archive and audit behaviour
BULK_ARCHIVE_LIMIT = 100
# When True a failed audit write aborts the mutation it describes
AUDIT_LOG_STRICT = env_bool('AUDIT_LOG_STRICT', False)


LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{asctime} {levelname} {name} {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'WARNING',
    },
    'loggers': {
        'django': {
            'handlers': ['console'],
            'level': 'INFO',
            'propagate': False,
        },
        'fibreflow': {
            'handlers': ['console'],
            'level': LOG_LEVEL,
            'propagate': False,
        },
    },
}


LANGUAGE_CODE = 'en-us'

TIME_ZONE = 'UTC'

USE_I18N = True

USE_TZ = True

STATIC_URL = 'static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'
