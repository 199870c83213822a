# =============================================================================
# Project configuration package
# =============================================================================
# Settings, root URLconf, WSGI/ASGI entry points and the Celery app.
#
# The Celery app is imported here so shared_task decorators in every
# installed app bind to it as soon as Django starts.
# =============================================================================

from config.celery import app as celery_app

__all__ = ("celery_app",)
