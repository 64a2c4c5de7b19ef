from datetime import date, datetime

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from telehealth.auth.dependencies import get_current_identity, get_db
from telehealth.auth.identity import Identity
from telehealth.models.appointment import Appointment
from telehealth.models.enums import AppointmentStatus, ConsultationType
from telehealth.routes.common import database_unavailable, ensure_database_ready
from telehealth.scheduling.slots import parse_time_of_day
from telehealth.services import booking as booking_service

router = APIRouter(tags=['appointments'])

MAX_CHIEF_COMPLAINT_LENGTH = 1000
MAX_CANCELLATION_REASON_LENGTH = 500


def _normalize_optional_text(value: str | None, max_length: int, label: str) -> str | None:
    if value is None:
        return None

    normalized = value.strip()
    if not normalized:
        return None

    if len(normalized) > max_length:
        raise ValueError(f'{label} must be {max_length} characters or fewer.')

    return normalized


class CreateBookingRequest(BaseModel):
    doctor_id: int
    consultation_type: ConsultationType
    date: date
    time: str
    chief_complaint: str | None = None

    @field_validator('time')
    @classmethod
    def validate_time(cls, value: str) -> str:
        parse_time_of_day(value)
        return value.strip()

    @field_validator('chief_complaint')
    @classmethod
    def validate_chief_complaint(cls, value: str | None) -> str | None:
        return _normalize_optional_text(value, MAX_CHIEF_COMPLAINT_LENGTH, 'Chief complaint')

    @property
    def scheduled_at(self) -> datetime:
        minute_of_day = parse_time_of_day(self.time)
        return datetime.combine(self.date, datetime.min.time()).replace(
            hour=minute_of_day // 60,
            minute=minute_of_day % 60,
        )


class CancelAppointmentRequest(BaseModel):
    reason: str | None = None

    @field_validator('reason')
    @classmethod
    def validate_reason(cls, value: str | None) -> str | None:
        return _normalize_optional_text(value, MAX_CANCELLATION_REASON_LENGTH, 'Cancellation reason')


class UpdateAppointmentStatusRequest(BaseModel):
    status: AppointmentStatus


class AppointmentResponse(BaseModel):
    id: int
    patient_id: int
    doctor_id: int
    scheduled_at: datetime
    duration_minutes: int
    consultation_type: ConsultationType
    status: AppointmentStatus
    chief_complaint: str | None = None
    cancelled_at: datetime | None = None
    cancellation_reason: str | None = None
    payment_amount: int | None = None
    payment_status: str | None = None


def to_appointment_response(appointment: Appointment) -> AppointmentResponse:
    payment = appointment.payment
    return AppointmentResponse(
        id=appointment.id,
        patient_id=appointment.patient_id,
        doctor_id=appointment.doctor_id,
        scheduled_at=appointment.scheduled_at,
        duration_minutes=appointment.duration_minutes,
        consultation_type=appointment.consultation_type,
        status=appointment.status,
        chief_complaint=appointment.chief_complaint,
        cancelled_at=appointment.cancelled_at,
        cancellation_reason=appointment.cancellation_reason,
        payment_amount=payment.amount if payment else None,
        payment_status=payment.status if payment else None,
    )


@router.post('', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_appointment(
    data: CreateBookingRequest,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        appointment = booking_service.create_booking(
            db,
            identity,
            doctor_id=data.doctor_id,
            consultation_type=data.consultation_type,
            scheduled_at=data.scheduled_at,
            chief_complaint=data.chief_complaint,
        )
        return to_appointment_response(appointment)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.get('/upcoming', response_model=list[AppointmentResponse])
def list_upcoming(
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return [
            to_appointment_response(appointment)
            for appointment in booking_service.list_upcoming_appointments(db, identity)
        ]
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.post('/{appointment_id}/cancel', response_model=AppointmentResponse)
def cancel_appointment(
    appointment_id: int,
    data: CancelAppointmentRequest,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        appointment = booking_service.cancel_appointment(db, identity, appointment_id, reason=data.reason)
        return to_appointment_response(appointment)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.patch('/{appointment_id}/status', response_model=AppointmentResponse)
def update_appointment_status(
    appointment_id: int,
    data: UpdateAppointmentStatusRequest,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        appointment = booking_service.transition_appointment_status(db, identity, appointment_id, data.status)
        return to_appointment_response(appointment)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc
