import asyncio
from typing import Dict, Optional

from ....application.ports.verification_repo import (
    RecordTransition,
    VerificationRecord,
    VerificationRepository,
)


class InMemoryVerificationRepository(VerificationRepository):
    """Process-local store for development and tests.

    A single lock serialises writes so ``transition`` behaves as a
    compare-and-set across concurrent requests on one event loop.
    """

    def __init__(self) -> None:
        self._records: Dict[str, VerificationRecord] = {}
        self._lock = asyncio.Lock()

    async def get(self, phone_number: str) -> Optional[VerificationRecord]:
        return self._records.get(phone_number)

    async def put(self, record: VerificationRecord) -> None:
        async with self._lock:
            self._records[record.phone_number] = record

    async def transition(self, phone_number: str, apply: RecordTransition) -> VerificationRecord:
        async with self._lock:
            current = self._records.get(phone_number)
            # Yield so competing transitions queue on the lock rather than race.
            await asyncio.sleep(0)
            updated = apply(current)
            self._records[phone_number] = updated
            return updated
