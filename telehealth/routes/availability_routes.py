from datetime import date

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from telehealth.auth.dependencies import get_current_identity, get_db
from telehealth.auth.identity import Identity
from telehealth.models.availability import AvailabilityWindow
from telehealth.models.enums import CONSULTATION_DURATIONS, ConsultationType
from telehealth.routes.common import database_unavailable, ensure_database_ready
from telehealth.scheduling.slots import format_time_of_day, parse_time_of_day
from telehealth.services import availability as availability_service
from telehealth.services import booking as booking_service
from telehealth.services.pricing import get_consultation_price

router = APIRouter(tags=['availability'])


class CreateAvailabilityWindowRequest(BaseModel):
    day_of_week: int | None = None
    specific_date: date | None = None
    start_time: str
    end_time: str
    is_blocked: bool = False

    @field_validator('start_time', 'end_time')
    @classmethod
    def validate_time_of_day(cls, value: str) -> str:
        return format_time_of_day(parse_time_of_day(value))

    @field_validator('day_of_week')
    @classmethod
    def validate_day_of_week(cls, value: int | None) -> int | None:
        if value is not None and not 0 <= value <= 6:
            raise ValueError('Day of week must be between 0 (Sunday) and 6 (Saturday).')
        return value


class AvailabilityWindowResponse(BaseModel):
    id: int
    doctor_id: int
    day_of_week: int | None = None
    specific_date: date | None = None
    start_time: str
    end_time: str
    is_blocked: bool


class DoctorResponse(BaseModel):
    id: int
    first_name: str
    last_name: str

    class Config:
        from_attributes = True


class SlotResponse(BaseModel):
    time: str
    available: bool


class ConsultationTypeOptionResponse(BaseModel):
    consultation_type: ConsultationType
    duration_minutes: int
    price: int


def to_window_response(window: AvailabilityWindow) -> AvailabilityWindowResponse:
    return AvailabilityWindowResponse(
        id=window.id,
        doctor_id=window.doctor_id,
        day_of_week=window.day_of_week,
        specific_date=window.specific_date,
        start_time=format_time_of_day(window.start_minute),
        end_time=format_time_of_day(window.end_minute),
        is_blocked=bool(window.is_blocked),
    )


@router.get('/doctors', response_model=list[DoctorResponse])
def list_doctors(db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        return availability_service.list_doctors_with_availability(db)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('/doctors/{doctor_id}/windows', response_model=list[AvailabilityWindowResponse])
def list_windows(doctor_id: int, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        return [to_window_response(window) for window in availability_service.list_availability_windows(db, doctor_id)]
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.post('/windows', response_model=AvailabilityWindowResponse, status_code=status.HTTP_201_CREATED)
def create_window(
    data: CreateAvailabilityWindowRequest,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        window = availability_service.create_availability_window(
            db,
            identity,
            start_minute=parse_time_of_day(data.start_time),
            end_minute=parse_time_of_day(data.end_time),
            day_of_week=data.day_of_week,
            specific_date=data.specific_date,
            is_blocked=data.is_blocked,
        )
        return to_window_response(window)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.delete('/windows/{window_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_window(
    window_id: int,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        availability_service.delete_availability_window(db, identity, window_id)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.get('/doctors/{doctor_id}/slots', response_model=list[SlotResponse])
def list_slots(
    doctor_id: int,
    slot_date: date = Query(..., alias='date'),
    consultation_type: ConsultationType = Query(...),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        slots = booking_service.get_available_slots(db, doctor_id, slot_date, consultation_type)
        return [SlotResponse(time=slot.time, available=slot.available) for slot in slots]
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('/consultation-types', response_model=list[ConsultationTypeOptionResponse])
def list_consultation_types(db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        return [
            ConsultationTypeOptionResponse(
                consultation_type=consultation_type,
                duration_minutes=duration_minutes,
                price=get_consultation_price(db, consultation_type),
            )
            for consultation_type, duration_minutes in CONSULTATION_DURATIONS.items()
        ]
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc
