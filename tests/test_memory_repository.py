import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from app.application.ports.verification_repo import DeliveryMethod, VerificationRecord
from app.application.services.verification_service import VerificationService
from app.exceptions import AlreadyUsed, CodeMismatch
from app.infrastructure.persistence.memory.verification_repository_memory import InMemoryVerificationRepository

PHONE = "+15551234567"


def make_record(code="123456"):
    now = datetime.now(timezone.utc)
    return VerificationRecord(
        phone_number=PHONE,
        code=code,
        method=DeliveryMethod.SMS,
        created_at=now,
        expires_at=now + timedelta(minutes=5),
    )


class FakeNotifier:
    async def send(self, phone_number, payload):
        return "SM1"


@pytest.mark.asyncio
async def test_put_overwrites_existing_record():
    repo = InMemoryVerificationRepository()
    await repo.put(make_record("111111"))
    await repo.put(make_record("222222"))
    assert (await repo.get(PHONE)).code == "222222"


@pytest.mark.asyncio
async def test_transition_failure_leaves_record_untouched():
    repo = InMemoryVerificationRepository()
    original = make_record()
    await repo.put(original)

    def reject(current):
        raise CodeMismatch()

    with pytest.raises(CodeMismatch):
        await repo.transition(PHONE, reject)
    assert await repo.get(PHONE) == original


@pytest.mark.asyncio
async def test_concurrent_verifications_succeed_at_most_once():
    repo = InMemoryVerificationRepository()
    svc = VerificationService(repo=repo, notifier=FakeNotifier(), code_factory=lambda: "123456")
    await svc.issue(PHONE, "sms")

    results = await asyncio.gather(
        *[svc.verify(PHONE, "123456") for _ in range(10)],
        return_exceptions=True,
    )

    successes = [r for r in results if not isinstance(r, Exception)]
    failures = [r for r in results if isinstance(r, Exception)]
    assert len(successes) == 1
    assert len(failures) == 9
    assert all(isinstance(f, AlreadyUsed) for f in failures)
    assert (await repo.get(PHONE)).verified is True
