"""
WSGI config for the wholesale payments service.

Exposes the WSGI callable as a module-level variable named ``application``
for Gunicorn and other traditional WSGI servers.

For more information on this file, see:
https://docs.djangoproject.com/en/5.2/howto/deployment/wsgi/
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

application = get_wsgi_application()
