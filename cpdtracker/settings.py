import sys
import logging
from pathlib import Path
from decouple import config

# CORE DJANGO SETTINGS

# Build paths inside the project like this: BASE_DIR / 'subdir'
BASE_DIR = Path(__file__).resolve().parent.parent

# Use 'development', 'staging', or 'production'
ENVIRONMENT = config('ENVIRONMENT', default='development')
DEBUG = config('DEBUG', default=True, cast=bool)

# Security settings
SECRET_KEY = config('SECRET_KEY', default='cpdtracker-insecure-development-key')
ALLOWED_HOSTS = config('ALLOWED_HOSTS', default='*').split(',') if config('ALLOWED_HOSTS', default='*') != '*' else ['*']


# APPLICATION DEFINITION

# Django Core Applications
DJANGO_APPS = [
    'django.contrib.auth',
    'django.contrib.contenttypes',
]

# Project-specific Applications
PROJECT_APPS = [
    'cpd.apps.CpdConfig',
]

INSTALLED_APPS = DJANGO_APPS + PROJECT_APPS

VERSION = '1.0.0'


# DATABASE CONFIGURATION - SQLite unless a server database is configured

DB_ENGINE = config('DB_ENGINE', default='django.db.backends.sqlite3')

if DB_ENGINE == 'django.db.backends.sqlite3':
    DATABASES = {
        'default': {
            'ENGINE': DB_ENGINE,
            'NAME': config('DB_NAME', default=str(BASE_DIR / 'cpdtracker.sqlite3')),
        }
    }
else:
    DATABASES = {
        'default': {
            'ENGINE': DB_ENGINE,
            'NAME': config('DB_NAME'),
            'USER': config('DB_USER', default=''),
            'PASSWORD': config('DB_PASS', default=''),
            'HOST': config('DB_HOST', default='localhost'),
            'PORT': config('DB_PORT', default=5432, cast=int),
            # Connection pooling for better performance
            'CONN_MAX_AGE': 600 if not DEBUG else 0,
            'CONN_HEALTH_CHECKS': True,
        }
    }


# CACHE CONFIGURATION - Environment-based caching strategy

if DEBUG:
    # Development: Local memory cache for quick testing
    CACHES = {
        'default': {
            'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
            'LOCATION': 'cpdtracker-dev-cache',
            'TIMEOUT': 300,  # 5 minutes
            'OPTIONS': {
                'MAX_ENTRIES': 1000,
            }
        }
    }
else:
    CACHES = {
        'default': {
            'BACKEND': 'django.core.cache.backends.db.DatabaseCache',
            'LOCATION': 'cpdtracker_cache_table',
            'TIMEOUT': 300,  # 5 minutes
            'OPTIONS': {
                'MAX_ENTRIES': 5000,
                'CULL_FREQUENCY': 3,  # Remove 1/3 of entries when MAX_ENTRIES is reached
            }
        }
    }


# INTERNATIONALIZATION

LANGUAGE_CODE = config('LANGUAGE_CODE', default='en-us')
TIME_ZONE = config('TIME_ZONE', default='Europe/Warsaw')
USE_I18N = True
USE_TZ = True


# ============================================================================
# LOGGING CONFIGURATION
# ============================================================================

# Ensure logs directory exists BEFORE defining LOGGING
LOGS_DIR = BASE_DIR / 'logs'
LOGS_DIR.mkdir(exist_ok=True, parents=True)

LOG_FILE_PATH = LOGS_DIR / 'cpdtracker.log'
ERROR_LOG_FILE_PATH = LOGS_DIR / 'cpdtracker_errors.log'

SQL_DEBUG = config('SQL_DEBUG', default=False, cast=bool)

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,

    # ------------------------------------------------------------------------
    # FORMATTERS
    # ------------------------------------------------------------------------
    'formatters': {
        'verbose': {
            'format': '[{levelname}] {asctime} | {name} | {module}.{funcName}:{lineno} | {process:d} {thread:d} | {message}',
            'style': '{',
            'datefmt': '%Y-%m-%d %H:%M:%S',
        },
        'simple': {
            'format': '[{levelname}] {asctime} | {name} | {message}',
            'style': '{',
            'datefmt': '%Y-%m-%d %H:%M:%S',
        },
    },

    # ------------------------------------------------------------------------
    # HANDLERS
    # ------------------------------------------------------------------------
    'handlers': {
        'console': {
            'level': 'DEBUG',
            'class': 'logging.StreamHandler',
            'formatter': 'simple',
        },

        # Main application log
        'file': {
            'level': 'INFO',
            'class': 'logging.handlers.RotatingFileHandler',
            'filename': str(LOG_FILE_PATH),
            'maxBytes': 15728640,  # 15MB per file
            'backupCount': 10,
            'formatter': 'verbose',
            'encoding': 'utf-8',
        },

        # Errors only
        'error_file': {
            'level': 'ERROR',
            'class': 'logging.handlers.RotatingFileHandler',
            'filename': str(ERROR_LOG_FILE_PATH),
            'maxBytes': 10485760,  # 10MB per file
            'backupCount': 20,
            'formatter': 'verbose',
            'encoding': 'utf-8',
        },
    },

    # ------------------------------------------------------------------------
    # LOGGERS
    # ------------------------------------------------------------------------
    'loggers': {
        '': {
            'handlers': ['console', 'file'],
            'level': 'INFO',
            'propagate': False,
        },

        'django': {
            'handlers': ['console', 'file', 'error_file'],
            'level': 'INFO',
            'propagate': False,
        },

        # SQL queries
        'django.db.backends': {
            'handlers': ['console'] if SQL_DEBUG else ['file'],
            'level': 'DEBUG' if SQL_DEBUG else 'WARNING',
            'propagate': False,
        },

        'cpdtracker': {
            'handlers': ['console', 'file', 'error_file'],
            'level': 'DEBUG' if DEBUG else 'INFO',
            'propagate': False,
        },

        # CPD points engine, summaries and imports
        'cpd': {
            'handlers': ['console', 'file', 'error_file'],
            'level': 'DEBUG' if DEBUG else 'INFO',
            'propagate': False,
        },
    },
}


# CUSTOM APPLICATION SETTINGS

# CPD (Continuing Professional Development) Tracking Settings
CPD_SETTINGS = {
    'SUMMARY_CACHE_TIMEOUT': config('CPD_SUMMARY_CACHE_TIMEOUT', default=300, cast=int),
    'TOP_LIMITS_COUNT': 3,
}


# Application monitoring with Sentry (optional)
MONITORING_ENABLED = config('MONITORING_ENABLED', default=False, cast=bool)
SENTRY_DSN = config('SENTRY_DSN', default=None)

if MONITORING_ENABLED and SENTRY_DSN:
    import sentry_sdk
    from sentry_sdk.integrations.django import DjangoIntegration
    from sentry_sdk.integrations.logging import LoggingIntegration

    sentry_logging = LoggingIntegration(
        level=logging.INFO,        # Capture info and above as breadcrumbs
        event_level=logging.ERROR  # Send errors as events to Sentry
    )

    sentry_sdk.init(
        dsn=SENTRY_DSN,
        integrations=[
            DjangoIntegration(),
            sentry_logging,
        ],
        traces_sample_rate=config('SENTRY_TRACES_SAMPLE_RATE', default=0.1, cast=float),
        send_default_pii=False,
        environment=ENVIRONMENT,
    )

    logging.getLogger(__name__).info(f"Sentry monitoring initialized for environment: {ENVIRONMENT}")


# ENVIRONMENT-SPECIFIC OVERRIDES

# Testing environment overrides
if 'test' in sys.argv or 'pytest' in sys.modules:
    # Use SQLite in-memory database for faster tests
    DATABASES['default'] = {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }

    # Summary caching is under test, so keep a real in-process cache
    CACHES = {
        'default': {
            'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
            'LOCATION': 'cpdtracker-test-cache',
        }
    }


# SETTINGS VALIDATION

assert SECRET_KEY, "SECRET_KEY must be set in environment variables"
assert ALLOWED_HOSTS, "ALLOWED_HOSTS must be configured"


# Set default primary key field type for Django 3.2+
DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'
