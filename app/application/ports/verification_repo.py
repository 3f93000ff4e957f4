from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Callable, Optional, Protocol


class DeliveryMethod(str, Enum):
    SMS = "sms"
    VOICE = "voice"


@dataclass(frozen=True)
class VerificationRecord:
    phone_number: str
    code: str
    method: DeliveryMethod
    created_at: datetime
    expires_at: datetime
    verified: bool = False
    verified_at: Optional[datetime] = None

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at

    def mark_verified(self, now: datetime) -> "VerificationRecord":
        return replace(self, verified=True, verified_at=now)


# Evaluated inside the store's atomic section; raising aborts without a write.
RecordTransition = Callable[[Optional[VerificationRecord]], VerificationRecord]


class VerificationRepository(Protocol):
    async def get(self, phone_number: str) -> Optional[VerificationRecord]:
        ...

    async def put(self, record: VerificationRecord) -> None:
        ...

    async def transition(self, phone_number: str, apply: RecordTransition) -> VerificationRecord:
        ...
