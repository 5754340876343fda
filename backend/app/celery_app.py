"""
Celery worker: asynchronous factory sends and the daily reminder scan.
"""
from celery import Celery
import logging
from .config import settings
from .database import SessionLocal
from .domain_errors import DomainError
from .schemas import WeComSendRequest
from .use_cases.factory_outbound import send_factory_message_use_case
from .use_cases.factory_reminders import run_factory_reminder_scan_use_case

logger = logging.getLogger(__name__)

celery_app = Celery(
    "trade_ops_factory_link",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND
)

celery_app.conf.update(
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    timezone='UTC',
    enable_utc=True,
)


@celery_app.task(name="send_factory_message")
def send_factory_message(payload: dict):
    """
    Deliver one factory message off the request path.

    Delivery retries happen inside the use-case; the task itself is never retried.
    """
    db = SessionLocal()

    try:
        request = WeComSendRequest.model_validate(payload)
        result = send_factory_message_use_case(db=db, request=request)
        if not result.success:
            logger.warning(f"⚠️ Factory message {result.message_id} failed: {result.error_message}")
        return result.model_dump(mode="json")

    except DomainError as e:
        logger.error(f"❌ Factory message rejected: {e.code} {e.message}")
        return {"success": False, "error_message": e.message, "code": e.code}

    except Exception as e:
        db.rollback()
        logger.error(f"❌ Error sending factory message: {e}", exc_info=True)
        raise

    finally:
        db.close()


@celery_app.task(name="run_factory_reminder_scan")
def run_factory_reminder_scan():
    """Nudge factories about purchase orders that stalled (one reminder per PO per run)."""
    db = SessionLocal()

    try:
        result = run_factory_reminder_scan_use_case(db=db)
        return result.model_dump(mode="json")

    except Exception as e:
        db.rollback()
        logger.error(f"❌ Error in reminder scan: {e}", exc_info=True)
        raise

    finally:
        db.close()


# Schedule periodic processing
celery_app.conf.beat_schedule = {
    'factory-reminder-scan-daily': {
        'task': 'run_factory_reminder_scan',
        'schedule': settings.FACTORY_REMINDER_SCHEDULE_SECONDS,
    },
}
