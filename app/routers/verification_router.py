# app/routers/verification_router.py
from fastapi import APIRouter, Depends, Request
import logging

from ..dependencies import get_verification_service
from ..application.services.verification_service import VerificationService
from ..schemas import (
    SendCodeRequest, SendCodeResponse, SendCodeData,
    VerifyCodeRequest, VerifyCodeResponse, VerifyCodeData,
    ErrorResponse, to_iso8601,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="", tags=["Verification"])

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}

# Browser-facing endpoints; OPTIONS on these is answered by PreflightMiddleware.
PREFLIGHT_PATHS = ("/sendVerificationCode", "/verifyCode")


@router.post("/sendVerificationCode", response_model=SendCodeResponse, responses=ERROR_RESPONSES)
async def send_verification_code(
    body: SendCodeRequest,
    request: Request,
    service: VerificationService = Depends(get_verification_service),
):
    """Generate a code for the phone number, store it and deliver it by SMS or voice call."""
    result = await service.issue(
        body.phone_number,
        body.method,
        request_id=getattr(request.state, "request_id", None),
    )
    return SendCodeResponse(
        message=f"Verification code sent via {result.method.value}",
        data=SendCodeData(
            delivery_id=result.delivery_id,
            method=result.method.value,
            expires_at=to_iso8601(result.expires_at),
        ),
    )


@router.post("/verifyCode", response_model=VerifyCodeResponse, responses=ERROR_RESPONSES)
async def verify_code(
    body: VerifyCodeRequest,
    request: Request,
    service: VerificationService = Depends(get_verification_service),
):
    """Check a submitted code and consume it on success."""
    result = await service.verify(
        body.phone_number,
        body.code,
        request_id=getattr(request.state, "request_id", None),
    )
    return VerifyCodeResponse(
        message="Verification successful",
        data=VerifyCodeData(phone_number=result.phone_number),
    )
