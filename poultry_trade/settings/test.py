"""
Settings used by the pytest suite.
SQLite on disk so threaded tests share one database.
Telegram and SMTP are switched off.
"""

from .base import *

DEPLOYMENT_MODE = 'test'

DEBUG = False

# IMMEDIATE makes every transaction take the write lock up front, so
# concurrent writers queue on the busy timeout instead of failing.
DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': BASE_DIR / 'test_db.sqlite3',
        'OPTIONS': {
            'timeout': 20,
            'transaction_mode': 'IMMEDIATE',
        },
        'TEST': {
            'NAME': BASE_DIR / 'test_db.sqlite3',
        },
    }
}

CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
        'LOCATION': 'poultry-test',
    }
}

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

EMAIL_BACKEND = 'django.core.mail.backends.locmem.EmailBackend'

TELEGRAM_BOT_TOKEN = ''
TELEGRAM_CHAT_ID = ''

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'handlers': {
        'null': {
            'class': 'logging.NullHandler',
        },
    },
    'root': {
        'handlers': ['null'],
    },
}
