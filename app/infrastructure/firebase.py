import logging

import firebase_admin
from firebase_admin import credentials

from ..core.config import Settings

logger = logging.getLogger(__name__)


def init_firebase_app(settings: Settings) -> firebase_admin.App:
    """Return the process-wide Firebase app, initializing it on first use.

    Service-account settings are used when all three are present; otherwise
    the SDK falls back to application default credentials.
    """
    if firebase_admin._apps:  # type: ignore[attr-defined]
        return firebase_admin.get_app()
    options = {"projectId": settings.FIREBASE_PROJECT_ID} if settings.FIREBASE_PROJECT_ID else None
    if settings.FIREBASE_CLIENT_EMAIL and settings.FIREBASE_PRIVATE_KEY and settings.FIREBASE_PROJECT_ID:
        cred = credentials.Certificate({
            "type": "service_account",
            "project_id": settings.FIREBASE_PROJECT_ID,
            "private_key": settings.FIREBASE_PRIVATE_KEY,
            "client_email": settings.FIREBASE_CLIENT_EMAIL,
            "token_uri": "https://oauth2.googleapis.com/token",
        })
        app = firebase_admin.initialize_app(cred, options)
        logger.info("Firebase app initialized from service account")
    else:
        logger.warning("Firebase service account not configured; using application default credentials")
        app = firebase_admin.initialize_app(options=options)
    return app
