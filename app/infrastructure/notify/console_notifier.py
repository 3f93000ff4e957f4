import logging
import uuid

from ...application.ports.notifier import DeliveryPayload, Notifier

logger = logging.getLogger(__name__)


class ConsoleNotifier(Notifier):
    """Development notifier: writes the payload to the log instead of sending it."""

    async def send(self, phone_number: str, payload: DeliveryPayload) -> str:
        delivery_id = f"console-{uuid.uuid4().hex}"
        logger.info(f"[DEV] {payload.method.value} to {phone_number} ({delivery_id}): {payload.content}")
        return delivery_id
