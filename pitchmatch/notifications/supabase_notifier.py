import logging
import time
from datetime import datetime
from threading import Thread
from typing import Optional

from pitchmatch.storage.client import get_supabase

logger = logging.getLogger(__name__)

NOTIFICATIONS_TABLE = "notifications"


def _notify_new_message(
    recipient_id: str,
    sender_id: str,
    message_id: str,
    startup_id: Optional[str] = None,
    max_retries: int = 2,
    retry_delay: float = 2.0,
) -> bool:
    """
    Insert a 'new_message' notification row for the recipient.

    Best effort: failures are retried and logged, never raised.
    Returns True when the insert went through.
    """
    client = get_supabase()
    if client is None:
        logger.debug("Supabase not configured; skipping notification for message_id=%s", message_id)
        return False

    data = {
        "user_id": recipient_id,
        "type": "new_message",
        "payload": {
            "message_id": message_id,
            "sender_id": sender_id,
            "startup_id": startup_id,
        },
        "created_at": datetime.utcnow().isoformat(),
    }

    attempts = 0
    while attempts < max_retries:
        attempts += 1
        try:
            client.table(NOTIFICATIONS_TABLE).insert(data).execute()
            logger.info(
                "Supabase notification succeeded on attempt %d/%d for message_id: %s",
                attempts, max_retries, message_id
            )
            return True
        except Exception as e:
            logger.error(
                "Supabase notification attempt %d/%d failed for message_id %s: %s",
                attempts, max_retries, message_id, str(e),
                exc_info=True
            )
            if attempts < max_retries:
                logger.info(
                    "Retrying Supabase notification in %s seconds for message_id: %s",
                    retry_delay, message_id
                )
                time.sleep(retry_delay)
            else:
                logger.error(
                    "All retry attempts failed for message_id %s. No further retries will be made.",
                    message_id
                )
    return False


def notify_new_message(
    recipient_id: str,
    sender_id: str,
    message_id: str,
    startup_id: Optional[str] = None,
) -> Thread:
    """
    Public entry point: queue the notification on a daemon thread so the
    request that sent the message is never held up.
    """
    logger.debug(
        "Queuing new-message notification in background thread for recipient=%s, message_id=%s",
        recipient_id, message_id
    )
    thread = Thread(
        target=_notify_new_message,
        args=(recipient_id, sender_id, message_id, startup_id),
        daemon=True,
    )
    thread.start()
    return thread
