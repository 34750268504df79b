"""
WSGI entry point for vidfetch.

Any WSGI server (gunicorn, uWSGI, mod_wsgi) imports this module and calls
the ``application`` callable for each request. Each request runs on its own
worker thread or process, so a request waiting on yt-dlp or ffmpeg does not
hold up the others.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'vidfetch.settings')

application = get_wsgi_application()
