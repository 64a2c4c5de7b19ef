from datetime import date
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from telehealth.auth.identity import Identity
from telehealth.core import errors
from telehealth.models.availability import AvailabilityWindow
from telehealth.models.enums import UserRole
from telehealth.models.user import User
from telehealth.scheduling.overlap import intervals_overlap


def get_doctor(db: Session, doctor_id: int) -> User:
    doctor = db.query(User).filter(
        User.id == doctor_id,
        User.role == UserRole.DOCTOR.value,
        User.is_active.is_(True),
    ).first()
    if doctor is None:
        raise errors.NotFoundError('Doctor not found.')
    return doctor


def create_availability_window(
    db: Session,
    identity: Identity,
    start_minute: int,
    end_minute: int,
    day_of_week: Optional[int] = None,
    specific_date: Optional[date] = None,
    is_blocked: bool = False,
) -> AvailabilityWindow:
    if identity.role != UserRole.DOCTOR:
        raise errors.AuthorizationError('Only doctors can manage availability.')

    if (day_of_week is None) == (specific_date is None):
        raise errors.ValidationError('Provide either a day of week or a specific date.')

    if day_of_week is not None and not 0 <= day_of_week <= 6:
        raise errors.ValidationError('Day of week must be between 0 (Sunday) and 6 (Saturday).')

    if start_minute >= end_minute:
        raise errors.ValidationError('End time must be after start time.')

    query = db.query(AvailabilityWindow).filter(AvailabilityWindow.doctor_id == identity.user_id)
    if day_of_week is not None:
        query = query.filter(
            AvailabilityWindow.day_of_week == day_of_week,
            AvailabilityWindow.specific_date.is_(None),
        )
    else:
        query = query.filter(AvailabilityWindow.specific_date == specific_date)

    for existing in query.all():
        if intervals_overlap(start_minute, end_minute, existing.start_minute, existing.end_minute):
            raise errors.ConflictError('This time overlaps with existing availability.')

    window = AvailabilityWindow(
        doctor_id=identity.user_id,
        day_of_week=day_of_week,
        specific_date=specific_date,
        start_minute=start_minute,
        end_minute=end_minute,
        is_blocked=is_blocked,
    )
    db.add(window)
    db.commit()
    db.refresh(window)
    return window


def delete_availability_window(db: Session, identity: Identity, window_id: int) -> None:
    if identity.role != UserRole.DOCTOR:
        raise errors.AuthorizationError('Only doctors can manage availability.')

    window = db.query(AvailabilityWindow).filter(AvailabilityWindow.id == window_id).first()
    if window is None:
        raise errors.NotFoundError('Availability not found.')
    if window.doctor_id != identity.user_id:
        raise errors.AuthorizationError('Only the owning doctor can remove this availability.')

    db.delete(window)
    db.commit()


def list_availability_windows(db: Session, doctor_id: int) -> List[AvailabilityWindow]:
    get_doctor(db, doctor_id)
    return db.query(AvailabilityWindow).filter(
        AvailabilityWindow.doctor_id == doctor_id,
    ).order_by(
        AvailabilityWindow.specific_date.asc(),
        AvailabilityWindow.day_of_week.asc(),
        AvailabilityWindow.start_minute.asc(),
    ).all()


def list_doctors_with_availability(db: Session) -> List[User]:
    return db.query(User).filter(
        User.role == UserRole.DOCTOR.value,
        User.is_active.is_(True),
        User.id.in_(
            select(AvailabilityWindow.doctor_id).where(
                AvailabilityWindow.is_blocked.is_(False),
                AvailabilityWindow.specific_date.is_(None),
            )
        ),
    ).order_by(User.last_name.asc(), User.first_name.asc()).all()
