"""HTTP endpoints for purchase verification and developer notifications."""

from __future__ import annotations

from logging import getLogger
from typing import Annotated

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import JSONResponse
from fastapi.concurrency import run_in_threadpool

from billingsync.adapters.google_play import decode_push_envelope
from billingsync.app import BillingServices
from billingsync.domain.errors import (
    BillingError,
    MalformedNotificationError,
    PushAuthenticationError,
)
from billingsync.domain.model import mask_token
from billingsync.domain.verification import VerifyRequest

from .errors import status_for
from .schemas import ApiResponse, HealthResponse, VerifyPurchaseBody

log = getLogger(__name__)

router = APIRouter()

NOTIFICATION_FAILED = "Notification could not be processed"


def get_services(request: Request) -> BillingServices:
    return request.app.state.services


ServicesDep = Annotated[BillingServices, Depends(get_services)]


def _error_response(error: BillingError, status_code: int, *, message: str | None = None) -> JSONResponse:
    body = ApiResponse(success=False, message=message or str(error), data={"code": error.code})
    return JSONResponse(status_code=status_code, content=body.model_dump())


@router.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse()


@router.post("/google/verify", response_model=ApiResponse)
def verify_purchase(body: VerifyPurchaseBody, services: ServicesDep) -> ApiResponse | JSONResponse:
    request = VerifyRequest(
        user_id=body.user_id,
        package_name=body.package_name,
        product_id=body.product_id,
        purchase_token=body.purchase_token,
    )
    try:
        outcome = services.verifier.verify(request)
    except BillingError as exc:
        status_code = status_for(exc)
        log_method = log.error if status_code >= 500 else log.info
        log_method(
            "Verification of %s for %s failed with %s (%s): %s",
            mask_token(body.purchase_token),
            body.user_id,
            exc.code,
            status_code,
            exc,
        )
        return _error_response(exc, status_code)
    return ApiResponse(
        success=True,
        message="Purchase verified",
        data={"outcome": outcome.value},
    )


@router.post("/google/rtdn-webhook", response_model=ApiResponse)
async def rtdn_webhook(
    request: Request,
    services: ServicesDep,
    authorization: Annotated[str | None, Header()] = None,
) -> ApiResponse | JSONResponse:
    if services.push_verifier is not None:
        try:
            await run_in_threadpool(services.push_verifier.verify, authorization)
        except PushAuthenticationError as exc:
            log.warning("Rejected unauthenticated push delivery: %s", exc)
            return _error_response(exc, 401)
        except BillingError as exc:
            log.error("Push authentication unavailable: %s", exc)
            return _error_response(exc, 500, message=NOTIFICATION_FAILED)

    body = await request.body()
    try:
        envelope, notification = decode_push_envelope(body)
    except MalformedNotificationError as exc:
        return _error_response(exc, 400)

    message_id = envelope.message.message_id
    try:
        outcomes = await run_in_threadpool(services.processor.process, notification)
    except BillingError as exc:
        log.error(
            "Processing of message %s failed with %s (retryable=%s): %s",
            message_id,
            exc.code,
            exc.retryable,
            exc,
        )
        return _error_response(exc, 500, message=NOTIFICATION_FAILED)

    log.info("Consumed message %s: %s", message_id, ", ".join(outcomes))
    return ApiResponse(
        success=True,
        message="Notification processed",
        data={"message_id": message_id, "outcomes": [outcome.value for outcome in outcomes]},
    )
