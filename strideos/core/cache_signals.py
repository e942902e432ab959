"""
Cache invalidation signals
Automatically invalidate dashboard caches when planning data changes
"""
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver
import logging
import threading
from contextlib import contextmanager

from .cache_utils import invalidate_dashboard_cache

logger = logging.getLogger(__name__)

# Thread-local storage to track signal suspension
_thread_locals = threading.local()

DASHBOARD_MODELS = {'Client', 'Department', 'Project', 'Task', 'Sprint'}


@contextmanager
def suspend_cache_signals():
    """
    Context manager to temporarily suspend cache invalidation signals.
    Used by bulk operations (reorders, sprint completion) which invalidate once at the end.
    """
    try:
        _thread_locals.suspended = True
        yield
    finally:
        _thread_locals.suspended = False


def is_suspended():
    return getattr(_thread_locals, 'suspended', False)


@receiver([post_save, post_delete])
def invalidate_dashboard_on_change(sender, instance, **kwargs):
    """Invalidate KPI/dashboard caches when clients, departments, projects, tasks or sprints change"""
    if is_suspended():
        return

    if sender.__name__ not in DASHBOARD_MODELS:
        return

    if sender._meta.app_label not in ('clients', 'projects', 'tasks', 'sprints'):
        return

    try:
        invalidate_dashboard_cache()
    except Exception as e:
        logger.warning(f"Error in invalidate_dashboard_on_change signal: {e}")
