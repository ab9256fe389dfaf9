"""Settings used by the test suite."""
import os

os.environ.setdefault('SESSION_SECRET', 'test-session-secret-not-for-production')

from .settings import *  # noqa: E402,F401,F403

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    },
}

TASK_BACKEND = 'local'
SESSION_COOKIE_SECURE = False
