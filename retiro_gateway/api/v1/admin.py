"""Administrative routes for the live participant panel"""

import logging
from typing import List
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from retiro_gateway.api.dependencies import get_request_id
from retiro_gateway.api.v1.schemas import (
    CheckinUpdate,
    InstallmentSchema,
    OkResponse,
    RegistrationSchema,
    RegistrationUpdate,
    StatusUpdate,
)
from retiro_gateway.domain.registrations import normalize_cpf
from retiro_gateway.infrastructure.database.repositories import InstallmentRepository, RegistrationRepository
from retiro_gateway.infrastructure.database.session import get_db

router = APIRouter(prefix="/admin")


def _commit(db: Session, request_id: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logging.error(f"Admin update failed: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Database unavailable")


@router.get("/registrations", response_model=List[RegistrationSchema])
def list_registrations(db: Session = Depends(get_db)):
    """All registrations, newest first"""
    return [RegistrationSchema.from_row(r) for r in RegistrationRepository(db).list_registrations()]


@router.patch("/registrations/{registration_id}", response_model=RegistrationSchema)
def update_registration(
    registration_id: int,
    request_body: RegistrationUpdate,
    request: Request,
    db: Session = Depends(get_db),
):
    """Edit identity fields; payment status is not editable here"""
    repo = RegistrationRepository(db)
    registration = repo.get_registration(registration_id)
    if registration is None:
        raise HTTPException(status_code=404, detail="Registration not found")

    fields = request_body.model_dump(exclude_unset=True)
    if "cpf" in fields:
        fields["cpf_norm"] = normalize_cpf(fields["cpf"])

    repo.update_identity(registration, fields)
    _commit(db, get_request_id(request))
    return RegistrationSchema.from_row(registration)


@router.delete("/registrations/{registration_id}", response_model=OkResponse)
def delete_registration(registration_id: int, request: Request, db: Session = Depends(get_db)):
    """Remove a registration together with its installments"""
    repo = RegistrationRepository(db)
    registration = repo.get_registration(registration_id)
    if registration is None:
        raise HTTPException(status_code=404, detail="Registration not found")

    repo.delete_registration(registration)
    _commit(db, get_request_id(request))
    return OkResponse()


@router.post("/registrations/{registration_id}/status", response_model=OkResponse)
def set_status(
    registration_id: int,
    request_body: StatusUpdate,
    request: Request,
    db: Session = Depends(get_db),
):
    """Override the aggregate status (e.g. cancel a registration)"""
    request_id = get_request_id(request)
    if not RegistrationRepository(db).update_registration_status(registration_id, request_body.status):
        raise HTTPException(status_code=404, detail="Registration not found")

    _commit(db, request_id)
    logging.info(
        "Registration status set by admin",
        extra={"request_id": request_id, "registration_id": registration_id, "status": request_body.status.value},
    )
    return OkResponse()


@router.post("/registrations/{registration_id}/checkin", response_model=OkResponse)
def set_checkin(
    registration_id: int,
    request_body: CheckinUpdate,
    request: Request,
    db: Session = Depends(get_db),
):
    """Mark or unmark arrival at the retreat"""
    if not RegistrationRepository(db).update_checkin(registration_id, request_body.value):
        raise HTTPException(status_code=404, detail="Registration not found")

    _commit(db, get_request_id(request))
    return OkResponse()


@router.get("/registrations/{registration_id}/installments", response_model=List[InstallmentSchema])
def list_installments(registration_id: int, db: Session = Depends(get_db)):
    """Installments of a registration as shown on the admin panel"""
    if RegistrationRepository(db).get_registration(registration_id) is None:
        raise HTTPException(status_code=404, detail="Registration not found")

    return [InstallmentSchema.from_row(inst) for inst in InstallmentRepository(db).list_installments(registration_id)]
