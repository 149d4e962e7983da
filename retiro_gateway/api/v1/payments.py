"""POST /v1/registrations/{id}/payments - PIX or boleto charge creation"""

import time
import logging
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from retiro_gateway.api.dependencies import get_payment_context, get_request_id
from retiro_gateway.api.v1.schemas import ChargeFailure, InstallmentSchema, PaymentRequest, PaymentResponse
from retiro_gateway.domain.exceptions import (
    InvalidScheduleInput,
    NotFound,
    ScheduleConflict,
    StoreFailure,
)
from retiro_gateway.infrastructure.observability.logging import log_charges
from retiro_gateway.services.billing import create_charges
from retiro_gateway.services.context import PaymentContext

router = APIRouter()


@router.post("/registrations/{registration_id}/payments", response_model=PaymentResponse, status_code=201)
async def create_payment(
    registration_id: int,
    request_body: PaymentRequest,
    request: Request,
    ctx: PaymentContext = Depends(get_payment_context),
):
    """
    Issue the registration fee as PIX or as 1-3 boletos.

    Flow:
    1. Plan due dates and amounts (client errors return before any charge)
    2. Create each installment's charge on Asaas, in order
    3. Persist every successful charge immediately

    A gateway failure halfway returns 502 with the installments created so far
    and the failing index; repeating the request resumes from that index.
    """
    start_time = time.time()
    request_id = get_request_id(request)

    try:
        outcome = await create_charges(
            ctx,
            registration_id,
            request_body.billing_type,
            count=request_body.installments,
            explicit_dates=request_body.due_dates,
        )

    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))

    except InvalidScheduleInput as e:
        logging.warning(f"Invalid schedule: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail={"message": str(e), "index": e.index})

    except ScheduleConflict as e:
        logging.warning(f"Schedule conflict: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=409, detail=str(e))

    except StoreFailure as e:
        logging.error(f"Store failure: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail=str(e))

    except Exception as e:
        ctx.db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    duration_ms = (time.time() - start_time) * 1000
    log_charges(
        request_id,
        registration_id,
        outcome.billing_type.value,
        len(outcome.created),
        outcome.failed_index,
        duration_ms,
    )

    response = PaymentResponse(
        registration_id=registration_id,
        billing_type=outcome.billing_type,
        installments=[InstallmentSchema.from_row(inst) for inst in outcome.installments],
        failure=(
            None
            if outcome.complete
            else ChargeFailure(index=outcome.failed_index, message=outcome.error or "Payment gateway error")
        ),
    )

    if not outcome.complete:
        return JSONResponse(status_code=502, content=response.model_dump(mode="json"))

    return response
