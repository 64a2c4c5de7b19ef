"""Availability model definitions."""

from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, Column, Date, DateTime, ForeignKey, Integer
from telehealth.database import Base


class AvailabilityWindow(Base):
    """A doctor's open (or blocked) interval on a weekday or a single date.

    Times are stored as minutes after midnight. Recurring windows carry
    ``day_of_week`` (0 = Sunday) and no ``specific_date``; one-off entries
    carry ``specific_date`` only.
    """
    __tablename__ = "availability_windows"
    __table_args__ = (
        CheckConstraint('start_minute < end_minute', name='ck_availability_window_range'),
        CheckConstraint(
            '(day_of_week IS NULL) <> (specific_date IS NULL)',
            name='ck_availability_window_kind',
        ),
    )

    id = Column(Integer, primary_key=True)
    doctor_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    day_of_week = Column(Integer)
    specific_date = Column(Date)
    start_minute = Column(Integer, nullable=False)
    end_minute = Column(Integer, nullable=False)
    is_blocked = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.now, nullable=False)
