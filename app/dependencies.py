import logging
from datetime import timedelta
from functools import lru_cache

from fastapi import Depends

from .core.config import settings
from .application.ports.audit_logger import AuditLogger
from .application.ports.notifier import Notifier
from .application.ports.verification_repo import VerificationRepository
from .application.services.verification_service import VerificationService
from .infrastructure.audit.std_logger import StdAuditLogger

logger = logging.getLogger(__name__)

# Clients are created on first use and shared by every request handler.

@lru_cache()
def get_verification_repository() -> VerificationRepository:
    backend = settings.STORE_BACKEND.lower()
    if backend == "memory":
        from .infrastructure.persistence.memory.verification_repository_memory import InMemoryVerificationRepository
        logger.warning("Using in-memory verification store; records are lost on restart")
        return InMemoryVerificationRepository()
    if backend == "firestore":
        from firebase_admin import firestore_async
        from .infrastructure.firebase import init_firebase_app
        from .infrastructure.persistence.firestore.verification_repository_firestore import FirestoreVerificationRepository
        app = init_firebase_app(settings)
        return FirestoreVerificationRepository(firestore_async.client(app), settings.FIRESTORE_COLLECTION)
    raise ValueError(f"Unknown STORE_BACKEND: {settings.STORE_BACKEND}")


@lru_cache()
def get_notifier() -> Notifier:
    backend = settings.NOTIFIER_BACKEND.lower()
    if backend == "console":
        from .infrastructure.notify.console_notifier import ConsoleNotifier
        logger.warning("Using console notifier; codes are logged instead of delivered")
        return ConsoleNotifier()
    if backend == "twilio":
        from .infrastructure.notify.twilio_notifier import TwilioNotifier, build_twilio_client
        return TwilioNotifier(build_twilio_client(settings), settings.TWILIO_PHONE_NUMBER)
    raise ValueError(f"Unknown NOTIFIER_BACKEND: {settings.NOTIFIER_BACKEND}")


@lru_cache()
def get_audit_logger() -> AuditLogger:
    return StdAuditLogger()


def get_verification_service(
    repo: VerificationRepository = Depends(get_verification_repository),
    notifier: Notifier = Depends(get_notifier),
    audit: AuditLogger = Depends(get_audit_logger),
) -> VerificationService:
    return VerificationService(
        repo=repo,
        notifier=notifier,
        audit=audit,
        ttl=timedelta(minutes=settings.CODE_TTL_MINUTES),
        voice_language=settings.VOICE_LANGUAGE,
    )
