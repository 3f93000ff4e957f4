import asyncio

import aiohttp
import pytest
from twilio.base.exceptions import TwilioRestException

from app.application.ports.notifier import DeliveryPayload
from app.application.ports.verification_repo import DeliveryMethod
from app.exceptions import DeliveryFailed
from app.infrastructure.notify.twilio_notifier import TwilioNotifier


class FakeResource:
    def __init__(self, sid, error=None):
        self.sid = sid
        self.error = error
        self.calls = []

    async def create_async(self, **kwargs):
        self.calls.append(kwargs)
        if self.error:
            raise self.error
        return type("Instance", (), {"sid": self.sid})


class FakeTwilioClient:
    def __init__(self, error=None):
        self.messages = FakeResource("SM123", error)
        self.calls = FakeResource("CA456", error)


@pytest.mark.asyncio
async def test_sms_payload_sent_as_message():
    client = FakeTwilioClient()
    notifier = TwilioNotifier(client, "+15550000000")

    sid = await notifier.send("+819012345678", DeliveryPayload(DeliveryMethod.SMS, "Your verification code is: 123456"))

    assert sid == "SM123"
    assert client.messages.calls == [{
        "body": "Your verification code is: 123456",
        "from_": "+15550000000",
        "to": "+819012345678",
    }]
    assert client.calls.calls == []


@pytest.mark.asyncio
async def test_voice_payload_placed_as_call():
    client = FakeTwilioClient()
    notifier = TwilioNotifier(client, "+15550000000")

    sid = await notifier.send("+819012345678", DeliveryPayload(DeliveryMethod.VOICE, "<Response/>"))

    assert sid == "CA456"
    assert client.calls.calls[0]["twiml"] == "<Response/>"
    assert client.messages.calls == []


@pytest.mark.asyncio
async def test_twilio_error_becomes_delivery_failed():
    error = TwilioRestException(400, "/Messages.json", "Invalid 'To' Phone Number")
    notifier = TwilioNotifier(FakeTwilioClient(error), "+15550000000")

    with pytest.raises(DeliveryFailed):
        await notifier.send("not-a-number", DeliveryPayload(DeliveryMethod.SMS, "hi"))


@pytest.mark.asyncio
async def test_missing_sender_number_fails_delivery():
    client = FakeTwilioClient()
    notifier = TwilioNotifier(client, "")

    with pytest.raises(DeliveryFailed):
        await notifier.send("+819012345678", DeliveryPayload(DeliveryMethod.SMS, "hi"))
    assert client.messages.calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [
    aiohttp.ClientConnectionError("connection reset"),
    asyncio.TimeoutError(),
])
async def test_transport_errors_become_delivery_failed(error):
    notifier = TwilioNotifier(FakeTwilioClient(error), "+15550000000")

    with pytest.raises(DeliveryFailed) as exc:
        await notifier.send("+819012345678", DeliveryPayload(DeliveryMethod.VOICE, "<Response/>"))
    assert exc.value.code == "delivery_failed"
    assert exc.value.__cause__ is error


@pytest.mark.asyncio
async def test_connection_error_is_audited_as_delivery_failure():
    from app.application.services.verification_service import VerificationService
    from app.infrastructure.persistence.memory.verification_repository_memory import InMemoryVerificationRepository

    class Audit:
        def __init__(self):
            self.entries = []

        def log(self, action, phone, request_id=None, success=True, details=None):
            self.entries.append((action, success, details))

    audit = Audit()
    repo = InMemoryVerificationRepository()
    svc = VerificationService(
        repo=repo,
        notifier=TwilioNotifier(FakeTwilioClient(aiohttp.ClientConnectionError("connection reset")), "+15550000000"),
        audit=audit,
    )

    with pytest.raises(DeliveryFailed):
        await svc.issue("+819012345678", "sms")

    assert audit.entries == [("verification.issue", False, {"method": "sms", "error": "delivery_failed"})]
    assert await repo.get("+819012345678") is not None
