"""POST /v1/webhooks/asaas - payment status notifications"""

from fastapi import APIRouter, BackgroundTasks, Depends

from retiro_gateway.api.dependencies import get_backup_client, get_payment_context
from retiro_gateway.api.v1.schemas import NotificationRequest, NotificationResponse
from retiro_gateway.infrastructure.clients.backup import BackupClient
from retiro_gateway.services.context import PaymentContext
from retiro_gateway.services.reconciliation import apply_notification

router = APIRouter()


@router.post("/webhooks/asaas", response_model=NotificationResponse)
def receive_notification(
    request_body: NotificationRequest,
    background_tasks: BackgroundTasks,
    ctx: PaymentContext = Depends(get_payment_context),
    backup_client: BackupClient = Depends(get_backup_client),
):
    """
    Apply an Asaas payment notification.

    Always answers 200 for well-formed bodies, including unknown payment ids
    and store errors, so the gateway's delivery queue is never blocked.
    """
    result = apply_notification(ctx, request_body.payment_id, request_body.payment_status)

    if result.settled_now:
        background_tasks.add_task(
            backup_client.send_event,
            {
                "event": "REGISTRATION_SETTLED",
                "registration_id": result.registration_id,
                "payment_id": result.external_id,
            },
        )

    return NotificationResponse(matched=result.matched, registration_status=result.registration_status)
