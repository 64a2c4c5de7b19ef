"""
Slot listing and the booking write path.

Both sides read the same rows (availability windows and blocking appointments
for the doctor's day) and apply the same overlap predicate; the write path
re-checks against storage instead of trusting what the client last fetched.
"""

import logging
from datetime import date, datetime, time, timedelta
from typing import List, Optional

from sqlalchemy import and_, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from telehealth.auth.identity import Identity
from telehealth.core import config, errors
from telehealth.models.appointment import Appointment
from telehealth.models.availability import AvailabilityWindow
from telehealth.models.enums import (
    BLOCKING_STATUSES,
    CONSULTATION_DURATIONS,
    AppointmentStatus,
    ConsultationType,
    PaymentStatus,
    UserRole,
    can_transition,
)
from telehealth.models.payment import Payment
from telehealth.scheduling.overlap import (
    BookedInterval,
    Slot,
    find_overlapping_interval,
    mark_slot_availability,
)
from telehealth.scheduling.slots import TimeWindow, day_of_week_index, generate_candidate_slots
from telehealth.services.availability import get_doctor
from telehealth.services.pricing import get_consultation_price

logger = logging.getLogger(__name__)

BLOCKING_STATUS_VALUES = [status.value for status in BLOCKING_STATUSES]
# Transitions driven by the post-call workflow. CONFIRMED comes from payment
# events and CANCELLED from cancel_appointment.
WORKFLOW_STATUSES = frozenset({
    AppointmentStatus.IN_PROGRESS,
    AppointmentStatus.COMPLETED,
    AppointmentStatus.NO_SHOW,
})
LONGEST_CONSULTATION_MINUTES = max(CONSULTATION_DURATIONS.values())


def get_windows_for_day(db: Session, doctor_id: int, target_date: date, blocked: bool) -> List[TimeWindow]:
    rows = db.query(AvailabilityWindow).filter(
        AvailabilityWindow.doctor_id == doctor_id,
        AvailabilityWindow.is_blocked.is_(blocked),
        or_(
            and_(
                AvailabilityWindow.day_of_week == day_of_week_index(target_date),
                AvailabilityWindow.specific_date.is_(None),
            ),
            AvailabilityWindow.specific_date == target_date,
        ),
    ).all()

    return [TimeWindow(start_minute=row.start_minute, end_minute=row.end_minute) for row in rows]


def get_booked_intervals(
    db: Session,
    doctor_id: int,
    range_start: datetime,
    range_end: datetime,
) -> List[BookedInterval]:
    """Blocking appointments whose interval can reach into ``[range_start, range_end)``."""
    earliest_start = range_start - timedelta(minutes=LONGEST_CONSULTATION_MINUTES)
    rows = db.query(Appointment.scheduled_at, Appointment.duration_minutes).filter(
        Appointment.doctor_id == doctor_id,
        Appointment.scheduled_at > earliest_start,
        Appointment.scheduled_at < range_end,
        Appointment.status.in_(BLOCKING_STATUS_VALUES),
    ).all()

    return [BookedInterval(start=scheduled_at, duration_minutes=duration) for scheduled_at, duration in rows]


def get_available_slots(
    db: Session,
    doctor_id: int,
    target_date: date,
    consultation_type: ConsultationType,
    now: Optional[datetime] = None,
) -> List[Slot]:
    get_doctor(db, doctor_id)
    duration_minutes = CONSULTATION_DURATIONS[consultation_type]

    windows = get_windows_for_day(db, doctor_id, target_date, blocked=False)
    if not windows:
        return []

    candidates = generate_candidate_slots(windows, duration_minutes)
    day_start = datetime.combine(target_date, time())
    return mark_slot_availability(
        target_date,
        candidates,
        duration_minutes,
        booked=get_booked_intervals(db, doctor_id, day_start, day_start + timedelta(days=1, minutes=duration_minutes)),
        now=now or datetime.now(),
        blocked_windows=get_windows_for_day(db, doctor_id, target_date, blocked=True),
    )


def create_booking(
    db: Session,
    identity: Identity,
    doctor_id: int,
    consultation_type: ConsultationType,
    scheduled_at: datetime,
    chief_complaint: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Appointment:
    if identity.role != UserRole.PATIENT:
        raise errors.AuthorizationError('Please log in as a patient to book an appointment.')

    scheduled_at = scheduled_at.replace(second=0, microsecond=0)
    if scheduled_at <= (now or datetime.now()):
        raise errors.ValidationError('Cannot book appointments in the past.')

    get_doctor(db, doctor_id)
    duration_minutes = CONSULTATION_DURATIONS[consultation_type]
    slot_end = scheduled_at + timedelta(minutes=duration_minutes)

    booked = get_booked_intervals(db, doctor_id, scheduled_at, slot_end)
    if find_overlapping_interval(scheduled_at, slot_end, booked) is not None:
        raise errors.ConflictError('This time slot is no longer available.')

    price = get_consultation_price(db, consultation_type)
    appointment = Appointment(
        patient_id=identity.user_id,
        doctor_id=doctor_id,
        scheduled_at=scheduled_at,
        duration_minutes=duration_minutes,
        consultation_type=consultation_type.value,
        status=AppointmentStatus.PENDING_PAYMENT.value,
        chief_complaint=chief_complaint,
    )
    appointment.payment = Payment(
        amount=price,
        deposit_amount=price,
        currency=config.PAYMENT_CURRENCY,
        status=PaymentStatus.PENDING.value,
    )
    db.add(appointment)

    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise errors.ConflictError('This time slot is no longer available.') from exc

    db.refresh(appointment)
    logger.info(
        'Booked appointment %s for patient %s with doctor %s at %s',
        appointment.id,
        identity.user_id,
        doctor_id,
        scheduled_at.isoformat(),
    )
    return appointment


def get_appointment(db: Session, appointment_id: int) -> Appointment:
    appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
    if appointment is None:
        raise errors.NotFoundError('Appointment not found.')
    return appointment


def is_participant(identity: Identity, appointment: Appointment) -> bool:
    return identity.user_id in (appointment.patient_id, appointment.doctor_id)


def cancel_appointment(
    db: Session,
    identity: Identity,
    appointment_id: int,
    reason: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Appointment:
    appointment = get_appointment(db, appointment_id)

    if not (is_participant(identity, appointment) or identity.is_staff):
        raise errors.AuthorizationError('Not authorized to cancel this appointment.')

    if not can_transition(appointment.status, AppointmentStatus.CANCELLED):
        raise errors.ValidationError(f'Cannot cancel an appointment that is {appointment.status}.')

    appointment.status = AppointmentStatus.CANCELLED.value
    appointment.cancelled_at = now or datetime.now()
    appointment.cancellation_reason = reason
    db.commit()
    db.refresh(appointment)

    logger.info('Appointment %s cancelled by user %s', appointment.id, identity.user_id)
    return appointment


def transition_appointment_status(
    db: Session,
    identity: Identity,
    appointment_id: int,
    target_status: AppointmentStatus,
) -> Appointment:
    if target_status not in WORKFLOW_STATUSES:
        raise errors.ValidationError(f'Status {target_status.value} cannot be set directly.')

    appointment = get_appointment(db, appointment_id)
    if identity.user_id != appointment.doctor_id and not identity.is_staff:
        raise errors.AuthorizationError('Only the assigned doctor or clinic staff can update this appointment.')

    if not can_transition(appointment.status, target_status):
        raise errors.ValidationError(
            f'Cannot move an appointment from {appointment.status} to {target_status.value}.'
        )

    appointment.status = target_status.value
    db.commit()
    db.refresh(appointment)
    return appointment


def list_upcoming_appointments(
    db: Session,
    identity: Identity,
    now: Optional[datetime] = None,
) -> List[Appointment]:
    query = db.query(Appointment).filter(
        Appointment.scheduled_at >= (now or datetime.now()),
        Appointment.status.in_([AppointmentStatus.CONFIRMED.value, AppointmentStatus.PENDING_PAYMENT.value]),
    )

    if identity.role == UserRole.PATIENT:
        query = query.filter(Appointment.patient_id == identity.user_id)
    elif identity.role == UserRole.DOCTOR:
        query = query.filter(Appointment.doctor_id == identity.user_id)

    return query.order_by(Appointment.scheduled_at.asc()).all()
