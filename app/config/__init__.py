# =============================================================================
# Django Project Configuration Package
# =============================================================================
# This package contains all Django configuration including settings, URLs,
# ASGI/WSGI applications, and Celery configuration.
#
# Import Celery app so webhook and maintenance tasks are registered when
# Django starts.
# =============================================================================

from config.celery import app as celery_app

__all__ = ("celery_app",)
