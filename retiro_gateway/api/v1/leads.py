"""POST /v1/leads - interest list capture"""

import logging
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from retiro_gateway.api.v1.schemas import LeadRequest, LeadResponse
from retiro_gateway.infrastructure.database.repositories import LeadRepository
from retiro_gateway.infrastructure.database.session import get_db

router = APIRouter()


@router.post("/leads", response_model=LeadResponse)
def upsert_lead(request_body: LeadRequest, db: Session = Depends(get_db)):
    """Create a lead, or refresh name/phone when the e-mail is already known"""
    email = request_body.email.strip().lower()
    try:
        lead, created = LeadRepository(db).upsert_lead(email, request_body.nome, request_body.telefone)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logging.error(f"Lead not stored: {e}")
        raise HTTPException(status_code=503, detail="Database unavailable")

    return LeadResponse(id=lead.id, email=lead.email, created=created)
