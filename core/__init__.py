"""Project package.

Loads the Celery app on Django start so the nightly tier task binds to it.
"""

from .celery import app as celery_app  # noqa: F401

__all__ = ("celery_app",)
