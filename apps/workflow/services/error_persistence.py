import logging
import traceback

from django.db import DatabaseError, transaction

from apps.workflow.models import AppError

logger = logging.getLogger(__name__)


def persist_app_error(exc: Exception, kind: str = "", job_id=None, **data):
    """Create and save an ``AppError`` for a swallowed exception.

    Recording the error must never raise on its own, so database failures are
    logged and the method returns ``None``.
    """
    payload = {"trace": traceback.format_exc(), **data}
    try:
        with transaction.atomic():
            return AppError.objects.create(
                message=str(exc) or exc.__class__.__name__,
                data=payload,
                kind=kind,
                job_id=job_id,
            )
    except DatabaseError:
        logger.exception("Could not persist %s error: %s", kind or "app", exc)
        return None
