"""
WSGI entry point for gunicorn and other synchronous servers.

Exposes the WSGI callable as a module-level variable named `application`.
Payment callbacks from M-Pesa and Paystack are plain HTTP POSTs, so the
synchronous stack serves every endpoint in this project.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

application = get_wsgi_application()
