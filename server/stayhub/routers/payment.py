"""Payment router for settlement, refunds and host earnings."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from ..core.dependencies import RequiredAuth, get_payment_service
from ..core.exceptions import AuthorizationError, ProblemDetailsException
from ..schemas.auth import Principal
from ..schemas.common import PROBLEM_RESPONSES
from ..schemas.payment import (
    GetPaymentRequest,
    HostEarnings,
    HostEarningsRequest,
    EarningsSummary,
    Payment,
    PaymentList,
    ProcessPaymentRequest,
    RefundPaymentRequest,
)
from ..services.payment_service import PaymentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/payment", tags=["payment"], responses=PROBLEM_RESPONSES)

PAYMENT_SERVICE_DEPENDENCY = Depends(get_payment_service)


def _require_host(principal: Principal) -> None:
    if not principal.can_host:
        raise AuthorizationError("Only hosts have earnings")


@router.post("/process", response_model=Payment, status_code=201)
async def process_payment(
    request: ProcessPaymentRequest,
    principal: Principal = RequiredAuth,
    payment_service: PaymentService = PAYMENT_SERVICE_DEPENDENCY
) -> JSONResponse:
    """
    Pay for a confirmed booking.

    The platform fee is taken from the booking total; the booking becomes ``paid``.
    """
    try:
        payment = await payment_service.process_payment(
            booking_id=request.booking_id,
            payer_id=principal.user_id,
            payment_method=request.payment_method,
            transaction_id=request.transaction_id
        )

        return JSONResponse(
            status_code=201,
            content=Payment.model_validate(payment).model_dump(mode="json")
        )

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in payment processing",
            extra={
                "booking_id": str(request.booking_id),
                "user_id": str(principal.user_id),
                "error": str(e)
            },
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.post("/refund", response_model=Payment)
async def refund_payment(
    request: RefundPaymentRequest,
    principal: Principal = RequiredAuth,
    payment_service: PaymentService = PAYMENT_SERVICE_DEPENDENCY
) -> JSONResponse:
    """Refund a completed payment; the booking is cancelled."""
    try:
        payment = await payment_service.refund_payment(
            payment_id=request.payment_id,
            requester_id=principal.user_id,
            reason=request.reason
        )

        return JSONResponse(
            status_code=200,
            content=Payment.model_validate(payment).model_dump(mode="json")
        )

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in payment refund",
            extra={
                "payment_id": str(request.payment_id),
                "user_id": str(principal.user_id),
                "error": str(e)
            },
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.post("/get", response_model=Payment)
async def get_payment(
    request: GetPaymentRequest,
    principal: Principal = RequiredAuth,
    payment_service: PaymentService = PAYMENT_SERVICE_DEPENDENCY
) -> JSONResponse:
    payment = await payment_service.get_payment(request.payment_id, principal)
    return JSONResponse(
        status_code=200,
        content=Payment.model_validate(payment).model_dump(mode="json")
    )


@router.post("/list", response_model=PaymentList)
async def list_payments(
    principal: Principal = RequiredAuth,
    payment_service: PaymentService = PAYMENT_SERVICE_DEPENDENCY
) -> JSONResponse:
    """List payments made (guests) or received (hosts), newest first."""
    payments = await payment_service.list_user_payments(principal)
    items = [Payment.model_validate(p) for p in payments]
    return JSONResponse(
        status_code=200,
        content=PaymentList(items=items, count=len(items)).model_dump(mode="json")
    )


@router.post("/earnings", response_model=HostEarnings)
async def host_earnings(
    request: HostEarningsRequest,
    principal: Principal = RequiredAuth,
    payment_service: PaymentService = PAYMENT_SERVICE_DEPENDENCY
) -> JSONResponse:
    """Monthly earnings of the calling host, newest month first."""
    _require_host(principal)
    items = await payment_service.get_host_earnings(
        principal.user_id,
        start_date=request.start_date,
        end_date=request.end_date
    )
    return JSONResponse(
        status_code=200,
        content=HostEarnings(items=items).model_dump(mode="json")
    )


@router.post("/earnings-summary", response_model=EarningsSummary)
async def earnings_summary(
    principal: Principal = RequiredAuth,
    payment_service: PaymentService = PAYMENT_SERVICE_DEPENDENCY
) -> JSONResponse:
    _require_host(principal)
    summary = await payment_service.get_earnings_summary(principal.user_id)
    return JSONResponse(
        status_code=200,
        content=summary.model_dump(mode="json")
    )
