"""Fire-and-forget delivery of notifications.

Callers commit their state change first and then hand the sender to
``dispatch``. Whatever the sender does (return an error, raise) is logged
and never reaches the caller.
"""
import logging
import threading

from flask import current_app

logger = logging.getLogger(__name__)


def _deliver(fn, args, kwargs):
    name = getattr(fn, "__name__", fn)
    try:
        result = fn(*args, **kwargs)
    except Exception:
        logger.exception("Notification %s failed", name)
        return
    if isinstance(result, tuple) and len(result) == 2 and result[0] is False:
        logger.warning("Notification %s not delivered: %s", name, result[1])


def _run(app, fn, args, kwargs):
    with app.app_context():
        _deliver(fn, args, kwargs)


def dispatch(fn, *args, **kwargs):
    app = current_app._get_current_object()
    if not app.config.get("NOTIFY_ASYNC", True):
        _deliver(fn, args, kwargs)
        return None

    worker = threading.Thread(target=_run, args=(app, fn, args, kwargs), daemon=True)
    worker.start()
    return worker
