"""Enumerations shared by the models, the scheduling engine and the routes."""

from enum import Enum


class UserRole(str, Enum):
    PATIENT = 'PATIENT'
    DOCTOR = 'DOCTOR'
    RECEPTION = 'RECEPTION'
    CLINIC_MANAGER = 'CLINIC_MANAGER'


class ConsultationType(str, Enum):
    INITIAL = 'INITIAL'
    FOLLOW_UP = 'FOLLOW_UP'


class AppointmentStatus(str, Enum):
    PENDING_PAYMENT = 'PENDING_PAYMENT'
    CONFIRMED = 'CONFIRMED'
    IN_PROGRESS = 'IN_PROGRESS'
    COMPLETED = 'COMPLETED'
    CANCELLED = 'CANCELLED'
    NO_SHOW = 'NO_SHOW'


class PaymentStatus(str, Enum):
    PENDING = 'PENDING'
    COMPLETED = 'COMPLETED'
    FAILED = 'FAILED'
    REFUNDED = 'REFUNDED'


STAFF_ROLES = frozenset({UserRole.RECEPTION, UserRole.CLINIC_MANAGER})

CONSULTATION_DURATIONS = {
    ConsultationType.INITIAL: 30,
    ConsultationType.FOLLOW_UP: 15,
}

# Statuses that occupy a doctor's calendar.
BLOCKING_STATUSES = (
    AppointmentStatus.CONFIRMED,
    AppointmentStatus.PENDING_PAYMENT,
    AppointmentStatus.IN_PROGRESS,
)

ALLOWED_TRANSITIONS = {
    AppointmentStatus.PENDING_PAYMENT: frozenset({AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED}),
    AppointmentStatus.CONFIRMED: frozenset({
        AppointmentStatus.IN_PROGRESS,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.NO_SHOW,
    }),
    AppointmentStatus.IN_PROGRESS: frozenset({AppointmentStatus.COMPLETED}),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
    AppointmentStatus.NO_SHOW: frozenset(),
}


def can_transition(current: str, target: str) -> bool:
    try:
        return AppointmentStatus(target) in ALLOWED_TRANSITIONS[AppointmentStatus(current)]
    except (ValueError, KeyError):
        return False
