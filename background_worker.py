"""Background worker for wei.

Fires pending reminders when they come due.

The worker:
- Runs continuously, checking for due notifications every WORKER_CHECK_INTERVAL seconds
- Asks the notification center to deliver everything that is due
- Logs every delivered notification
- POSTs it to NOTIFICATION_WEBHOOK_URL when one is configured (no retry)
"""

import asyncio
import signal
import sys
from typing import List, Optional

import httpx

import database
from config import settings
from logger_config import setup_logger
from notifications import DeliveredNotification, NotificationCenter

logger = setup_logger(__name__, 'worker.log')

# Global flag for graceful shutdown
shutdown_requested = False


def signal_handler(signum, frame):
    """Handle shutdown signals gracefully."""
    global shutdown_requested
    logger.info(f"Received signal {signum}, initiating graceful shutdown...")
    shutdown_requested = True


async def post_to_webhook(
    client: httpx.AsyncClient,
    webhook_url: str,
    notification: DeliveredNotification,
) -> bool:
    """Send one delivered notification to the webhook.

    Returns:
        bool: True if the webhook answered with a 2xx status
    """
    try:
        response = await client.post(webhook_url, json=notification.model_dump(mode="json"))
        if response.is_success:
            return True
        logger.error(
            f"Webhook rejected notification {notification.request_id}. "
            f"Status: {response.status_code}, Response: {response.text}"
        )
        return False
    except httpx.TimeoutException:
        logger.error(f"Timeout while posting notification {notification.request_id}")
        return False
    except httpx.RequestError as e:
        logger.error(f"Network error while posting notification {notification.request_id}: {str(e)}")
        return False


async def process_due_notifications(
    center: NotificationCenter,
    webhook_url: Optional[str] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> List[DeliveredNotification]:
    """Deliver due notifications once.

    Args:
        center: Notification center to poll
        webhook_url: Optional webhook receiving each delivered notification
        client: HTTP client to use (one is created when omitted)

    Returns:
        List[DeliveredNotification]: What was delivered in this pass
    """
    delivered = center.deliver_due()
    if not delivered:
        logger.debug("No notifications due at this time")
        return delivered

    logger.info(f"Delivering {len(delivered)} notification(s)")
    for notification in delivered:
        contact = notification.user_info.get("contact_name")
        logger.info(
            f"🔔 {notification.content.title} {notification.content.subtitle} "
            f"(request {notification.request_id}, contact {contact!r})"
        )

    if webhook_url:
        if client is None:
            async with httpx.AsyncClient(timeout=10.0) as own_client:
                for notification in delivered:
                    await post_to_webhook(own_client, webhook_url, notification)
        else:
            for notification in delivered:
                await post_to_webhook(client, webhook_url, notification)

    return delivered


async def worker_loop(center: Optional[NotificationCenter] = None):
    """Main worker loop that runs until a shutdown signal arrives."""
    logger.info("Background worker started")
    logger.info(f"Worker enabled: {settings.WORKER_ENABLED}")
    logger.info(f"Check interval: {settings.WORKER_CHECK_INTERVAL} seconds")
    logger.info(f"Webhook: {settings.NOTIFICATION_WEBHOOK_URL or 'disabled'}")

    if not settings.WORKER_ENABLED:
        logger.warning("Worker is disabled in configuration. Exiting.")
        return

    if center is None:
        center = NotificationCenter(database.build_session_factory())

    iteration = 0
    while not shutdown_requested:
        try:
            iteration += 1
            await process_due_notifications(center, settings.NOTIFICATION_WEBHOOK_URL)

            # Sleep in 1-second steps to allow quick shutdown
            for _ in range(settings.WORKER_CHECK_INTERVAL):
                if shutdown_requested:
                    break
                await asyncio.sleep(1)

        except Exception as e:
            logger.error(f"Error in worker loop iteration {iteration}: {str(e)}", exc_info=True)
            await asyncio.sleep(5)

    logger.info("Background worker shutting down gracefully")


def main():
    """Main entry point for the background worker."""
    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)

    logger.info("=" * 60)
    logger.info("wei - Background Worker")
    logger.info("=" * 60)

    try:
        asyncio.run(worker_loop())
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt")
    except Exception as e:
        logger.error(f"Fatal error in background worker: {str(e)}", exc_info=True)
        sys.exit(1)

    logger.info("Background worker stopped")
    sys.exit(0)


if __name__ == "__main__":
    main()
