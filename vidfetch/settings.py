"""
Django settings for the vidfetch project.

Every value that varies between deployments is read from the environment
(optionally loaded from a .env file next to manage.py).
"""

import os
import shlex
import sys
from pathlib import Path

from django.core.exceptions import ImproperlyConfigured
from dotenv import load_dotenv


def env(name, default=None, *, required=False):
    val = os.getenv(name, default)
    if required and (val is None or (isinstance(val, str) and val.strip() == '')):
        raise ImproperlyConfigured(f'Missing required environment variable: {name}')
    return val


def env_bool(name, default=False):
    return str(os.getenv(name, str(default))).lower() in {'1', 'true', 'yes', 'on'}


def env_int(name, default):
    try:
        return int(os.getenv(name, default))
    except (TypeError, ValueError):
        raise ImproperlyConfigured(f'Environment variable {name} must be an integer')


def env_float(name, default):
    try:
        return float(os.getenv(name, default))
    except (TypeError, ValueError):
        raise ImproperlyConfigured(f'Environment variable {name} must be a number')


BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(BASE_DIR / '.env')

DEBUG = env_bool('DEBUG', False)

# In production (DEBUG=False) a real secret must come from the environment
SECRET_KEY = env('DJANGO_SECRET_KEY', 'dev-only-secret-key-change-me')

ALLOWED_HOSTS = [
    h.strip() for h in os.getenv('ALLOWED_HOSTS', '127.0.0.1,localhost,testserver').split(',')
    if h.strip()
]

INSTALLED_APPS = [
    'django.contrib.contenttypes',
    'django.contrib.staticfiles',
    'clips',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.middleware.common.CommonMiddleware',
]

ROOT_URLCONF = 'vidfetch.urls'

TEMPLATES = []

WSGI_APPLICATION = 'vidfetch.wsgi.application'

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': BASE_DIR / 'db.sqlite3',
    }
}

LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True

STATIC_URL = '/static/'

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# Video download pipeline

# Per-job working directories (tmp-<job id>/) are created under this path
DOWNLOADER_DOWNLOAD_DIR = Path(env('DOWNLOADER_DOWNLOAD_DIR', str(BASE_DIR / 'downloads')))

# Netscape-format cookie store handed to yt-dlp when it exists. Set to an
# empty string to never send cookies.
DOWNLOADER_COOKIES_FILE = env('DOWNLOADER_COOKIES_FILE', str(BASE_DIR / 'cookies.txt'))

# Command used to launch yt-dlp, as an argument list
DOWNLOADER_YTDLP_COMMAND = (
    shlex.split(os.environ['DOWNLOADER_YTDLP_COMMAND'])
    if os.getenv('DOWNLOADER_YTDLP_COMMAND')
    else [sys.executable, '-m', 'yt_dlp']
)
DOWNLOADER_YTDLP_EXTRA_ARGS = env('DOWNLOADER_YTDLP_EXTRA_ARGS', '')

DOWNLOADER_FFMPEG_BINARY = env('DOWNLOADER_FFMPEG_BINARY', 'ffmpeg')
DOWNLOADER_FFMPEG_ARGS = env(
    'DOWNLOADER_FFMPEG_ARGS',
    '-c:v libx264 -preset ultrafast -crf 30 -c:a aac -b:a 128k -movflags +faststart',
)

# Seconds before a running tool is killed and the stage fails
DOWNLOADER_ACQUIRE_TIMEOUT = env_float('DOWNLOADER_ACQUIRE_TIMEOUT', 900)
DOWNLOADER_TRANSFORM_TIMEOUT = env_float('DOWNLOADER_TRANSFORM_TIMEOUT', 1800)

# Upper bound on jobs downloading or encoding at the same time
DOWNLOADER_MAX_CONCURRENT_JOBS = env_int('DOWNLOADER_MAX_CONCURRENT_JOBS', 2)

# Grace period between the end of a response and temp file removal
DOWNLOADER_CLEANUP_DELAY = env_float('DOWNLOADER_CLEANUP_DELAY', 0)

DOWNLOADER_STREAM_CHUNK_SIZE = env_int('DOWNLOADER_STREAM_CHUNK_SIZE', 64 * 1024)
DOWNLOADER_DELIVERY_FILENAME = env('DOWNLOADER_DELIVERY_FILENAME', 'downloaded_video.mp4')

DOWNLOADER_LOG_LEVEL = env('DOWNLOADER_LOG_LEVEL', 'INFO')

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '[{asctime}] {levelname} {name}: {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'loggers': {
        'clips': {
            'handlers': ['console'],
            'level': DOWNLOADER_LOG_LEVEL,
            'propagate': False,
        },
    },
}
