from dataclasses import dataclass
from typing import Protocol

from .verification_repo import DeliveryMethod


@dataclass(frozen=True)
class DeliveryPayload:
    method: DeliveryMethod
    # Plain message body for sms, TwiML document for voice.
    content: str


class Notifier(Protocol):
    async def send(self, phone_number: str, payload: DeliveryPayload) -> str:
        ...
