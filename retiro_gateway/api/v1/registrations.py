"""Participant sign-up and slot counter"""

import logging
from datetime import datetime, timezone
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from retiro_gateway.api.dependencies import get_backup_client, get_request_id
from retiro_gateway.api.v1.schemas import (
    RegistrationCreated,
    RegistrationRequest,
    SlotsResponse,
)
from retiro_gateway.config import settings
from retiro_gateway.domain.registrations import make_checkin_token, normalize_cpf, remaining_slots
from retiro_gateway.infrastructure.clients.backup import BackupClient
from retiro_gateway.infrastructure.database.repositories import RegistrationRepository
from retiro_gateway.infrastructure.database.session import get_db
from retiro_gateway.infrastructure.observability.metrics import registration_counter

router = APIRouter()


@router.post("/registrations", response_model=RegistrationCreated, status_code=201)
def create_registration(
    request_body: RegistrationRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    db: Session = Depends(get_db),
    backup_client: BackupClient = Depends(get_backup_client),
):
    """Register a participant in pending status"""
    request_id = get_request_id(request)
    cpf_norm = normalize_cpf(request_body.cpf)
    if not cpf_norm:
        raise HTTPException(status_code=422, detail="CPF must contain digits")

    try:
        registration = RegistrationRepository(db).create_registration(
            nome=request_body.nome.strip(),
            cpf=request_body.cpf,
            cpf_norm=cpf_norm,
            nascimento=request_body.nascimento,
            email=request_body.email.strip(),
            telefone=request_body.telefone,
            frequenta_pv=request_body.frequenta_pv,
            campus=request_body.campus,
            checkin_token=make_checkin_token(cpf_norm, datetime.now(timezone.utc)),
        )
        db.commit()

    except SQLAlchemyError as e:
        db.rollback()
        logging.error(f"Registration not stored: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Database unavailable")

    registration_counter.inc()
    logging.info(
        "Registration created",
        extra={"request_id": request_id, "registration_id": registration.id, "step": "registration_created"},
    )

    background_tasks.add_task(
        backup_client.send_event,
        {
            "event": "REGISTRATION_CREATED",
            "registration_id": registration.id,
            "nome": registration.nome,
            "email": registration.email,
            "telefone": registration.telefone,
            "campus": registration.campus,
        },
    )

    return RegistrationCreated(id=registration.id)


@router.get("/slots", response_model=SlotsResponse)
def get_slots(db: Session = Depends(get_db)):
    """Registrations so far, how many are settled, and places left"""
    total, paid = RegistrationRepository(db).count_slots()
    return SlotsResponse(
        total=total,
        paid=paid,
        remaining=remaining_slots(settings.registration_limit, total),
    )

