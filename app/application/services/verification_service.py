import hmac
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

from ...exceptions import (
    AlreadyUsed,
    CodeMismatch,
    DeliveryFailed,
    Expired,
    InvalidArgument,
    NotFound,
    VerificationError,
)
from ..ports.audit_logger import AuditLogger
from ..ports.notifier import Notifier
from ..ports.verification_repo import DeliveryMethod, VerificationRecord, VerificationRepository
from .code_generator import generate_code
from .message_formatter import format_payload

logger = logging.getLogger(__name__)

DEFAULT_CODE_TTL = timedelta(minutes=5)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def mask_phone(phone: str) -> str:
    return f"***{phone[-4:]}" if len(phone) > 4 else "***"


def resolve_method(method: Optional[str]) -> DeliveryMethod:
    try:
        return DeliveryMethod(method)
    except ValueError:
        raise InvalidArgument("method", 'method must be "sms" or "voice"')


def apply_verification(record: Optional[VerificationRecord], code: str, now: datetime) -> VerificationRecord:
    """Advance a record from pending to verified, or raise the first failing check.

    Checks run in a fixed order: missing record, already used, expired,
    wrong code. A rejected attempt never changes the record.
    """
    if record is None:
        raise NotFound()
    if record.verified:
        raise AlreadyUsed()
    if record.is_expired(now):
        raise Expired()
    if not hmac.compare_digest(record.code.encode(), code.encode()):
        raise CodeMismatch()
    return record.mark_verified(now)


@dataclass
class IssueResult:
    delivery_id: str
    method: DeliveryMethod
    created_at: datetime
    expires_at: datetime


@dataclass
class VerifyResult:
    phone_number: str
    verified_at: datetime


@dataclass
class VerificationService:
    repo: VerificationRepository
    notifier: Notifier
    audit: Optional[AuditLogger] = None
    ttl: timedelta = DEFAULT_CODE_TTL
    voice_language: str = "en-US"
    clock: Callable[[], datetime] = field(default=utcnow)
    code_factory: Callable[[], str] = field(default=generate_code)

    async def issue(self, phone_number: Optional[str], method: Optional[str] = "sms", request_id: Optional[str] = None) -> IssueResult:
        if not phone_number:
            raise InvalidArgument("phoneNumber")
        delivery_method = resolve_method(method)

        code = self.code_factory()
        created_at = self.clock()
        record = VerificationRecord(
            phone_number=phone_number,
            code=code,
            method=delivery_method,
            created_at=created_at,
            expires_at=created_at + self.ttl,
        )
        # Replaces any pending record for this number, so older codes stop working.
        await self.repo.put(record)

        payload = format_payload(code, delivery_method, self.voice_language)
        try:
            delivery_id = await self.notifier.send(phone_number, payload)
        except DeliveryFailed as e:
            logger.warning(f"Delivery via {delivery_method.value} to {mask_phone(phone_number)} failed: {e.message}")
            self._audit("verification.issue", phone_number, request_id, False, {"method": delivery_method.value, "error": e.code})
            raise

        logger.info(f"Verification code sent via {delivery_method.value} to {mask_phone(phone_number)}. Delivery id: {delivery_id}")
        self._audit("verification.issue", phone_number, request_id, True, {"method": delivery_method.value, "delivery_id": delivery_id})
        return IssueResult(
            delivery_id=delivery_id,
            method=delivery_method,
            created_at=record.created_at,
            expires_at=record.expires_at,
        )

    async def verify(self, phone_number: Optional[str], code: Optional[str], request_id: Optional[str] = None) -> VerifyResult:
        if not phone_number:
            raise InvalidArgument("phoneNumber")
        if not code:
            raise InvalidArgument("code")

        now = self.clock()
        try:
            record = await self.repo.transition(phone_number, lambda current: apply_verification(current, code, now))
        except VerificationError as e:
            self._audit("verification.verify", phone_number, request_id, False, {"error": e.code})
            raise

        logger.info(f"Verification successful for {mask_phone(phone_number)}")
        self._audit("verification.verify", phone_number, request_id, True)
        return VerifyResult(phone_number=record.phone_number, verified_at=record.verified_at)

    def _audit(self, action: str, phone: str, request_id: Optional[str], success: bool, details: Optional[Dict[str, Any]] = None) -> None:
        if self.audit is None:
            return
        self.audit.log(action, phone, request_id=request_id, success=success, details=details)
