"""Appointment model definitions."""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, text
from sqlalchemy.orm import relationship
from telehealth.database import Base

_ACTIVE_SLOT_PREDICATE = text("status IN ('CONFIRMED', 'PENDING_PAYMENT', 'IN_PROGRESS')")


class Appointment(Base):
    """Represents a booked consultation between a patient and a doctor."""
    __tablename__ = "appointments"
    __table_args__ = (
        # One active booking per doctor and start time.
        Index(
            'uq_appointments_doctor_active_slot',
            'doctor_id',
            'scheduled_at',
            unique=True,
            sqlite_where=_ACTIVE_SLOT_PREDICATE,
            postgresql_where=_ACTIVE_SLOT_PREDICATE,
        ),
    )

    id = Column(Integer, primary_key=True)
    patient_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    doctor_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    scheduled_at = Column(DateTime, nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    consultation_type = Column(String, nullable=False)
    status = Column(String, nullable=False)
    chief_complaint = Column(String)
    cancelled_at = Column(DateTime)
    cancellation_reason = Column(String)
    video_room_name = Column(String)
    video_room_url = Column(String)
    created_at = Column(DateTime, default=datetime.now, nullable=False)

    patient = relationship("User", foreign_keys=[patient_id])
    doctor = relationship("User", foreign_keys=[doctor_id])
    payment = relationship("Payment", back_populates="appointment", uselist=False)
