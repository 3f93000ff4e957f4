import logging
from typing import Any, Dict, Optional

from google.api_core import exceptions as google_exceptions
from google.cloud import firestore

from ....exceptions import StoreUnavailable
from ....application.ports.verification_repo import (
    DeliveryMethod,
    RecordTransition,
    VerificationRecord,
    VerificationRepository,
)

logger = logging.getLogger(__name__)


def record_to_document(record: VerificationRecord) -> Dict[str, Any]:
    return {
        "phoneNumber": record.phone_number,
        "code": record.code,
        "method": record.method.value,
        "createdAt": record.created_at,
        "expiresAt": record.expires_at,
        "verified": record.verified,
        "verifiedAt": record.verified_at,
    }


def document_to_record(data: Dict[str, Any]) -> VerificationRecord:
    return VerificationRecord(
        phone_number=data["phoneNumber"],
        code=data["code"],
        method=DeliveryMethod(data.get("method", DeliveryMethod.SMS.value)),
        created_at=data["createdAt"],
        expires_at=data["expiresAt"],
        verified=bool(data.get("verified", False)),
        verified_at=data.get("verifiedAt"),
    )


class FirestoreVerificationRepository(VerificationRepository):
    """One document per phone number in a dedicated collection."""

    def __init__(self, client: firestore.AsyncClient, collection: str = "tw_verification_codes"):
        self.client = client
        self.collection = collection

    def _doc(self, phone_number: str) -> firestore.AsyncDocumentReference:
        return self.client.collection(self.collection).document(phone_number)

    async def get(self, phone_number: str) -> Optional[VerificationRecord]:
        try:
            snapshot = await self._doc(phone_number).get()
        except google_exceptions.GoogleAPIError as e:
            logger.error(f"Firestore read failed: {e}")
            raise StoreUnavailable() from e
        if not snapshot.exists:
            return None
        return document_to_record(snapshot.to_dict())

    async def put(self, record: VerificationRecord) -> None:
        try:
            await self._doc(record.phone_number).set(record_to_document(record))
        except google_exceptions.GoogleAPIError as e:
            logger.error(f"Firestore write failed: {e}")
            raise StoreUnavailable() from e

    async def transition(self, phone_number: str, apply: RecordTransition) -> VerificationRecord:
        ref = self._doc(phone_number)

        @firestore.async_transactional
        async def run(transaction: firestore.AsyncTransaction) -> VerificationRecord:
            snapshot = await ref.get(transaction=transaction)
            current = document_to_record(snapshot.to_dict()) if snapshot.exists else None
            updated = apply(current)
            transaction.set(ref, record_to_document(updated))
            return updated

        try:
            return await run(self.client.transaction())
        except google_exceptions.GoogleAPIError as e:
            logger.error(f"Firestore transaction failed: {e}")
            raise StoreUnavailable() from e
