import asyncio
import logging
from typing import Optional

import aiohttp
from twilio.base.exceptions import TwilioException
from twilio.http.async_http_client import AsyncTwilioHttpClient
from twilio.rest import Client

from ...core.config import Settings
from ...exceptions import DeliveryFailed
from ...application.ports.notifier import DeliveryPayload, Notifier
from ...application.ports.verification_repo import DeliveryMethod

logger = logging.getLogger(__name__)


def build_twilio_client(settings: Settings) -> Client:
    http_client = AsyncTwilioHttpClient(timeout=settings.TWILIO_TIMEOUT)
    return Client(settings.TWILIO_ACCOUNT_SID, settings.TWILIO_AUTH_TOKEN, http_client=http_client)


class TwilioNotifier(Notifier):
    """Delivers text payloads as SMS and voice payloads as an outbound TwiML call."""

    def __init__(self, client: Client, from_number: Optional[str]):
        self.client = client
        self.from_number = from_number

    async def send(self, phone_number: str, payload: DeliveryPayload) -> str:
        if not self.from_number:
            raise DeliveryFailed("Twilio sender phone number not configured")
        try:
            if payload.method == DeliveryMethod.VOICE:
                call = await self.client.calls.create_async(
                    twiml=payload.content,
                    from_=self.from_number,
                    to=phone_number,
                )
                return call.sid
            message = await self.client.messages.create_async(
                body=payload.content,
                from_=self.from_number,
                to=phone_number,
            )
            return message.sid
        except TwilioException as e:
            logger.error(f"Twilio {payload.method.value} delivery failed: {e}")
            raise DeliveryFailed(str(e) or None) from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Twilio {payload.method.value} request did not complete: {e!r}")
            raise DeliveryFailed() from e
