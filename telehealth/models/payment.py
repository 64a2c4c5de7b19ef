"""Payment model definitions."""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from telehealth.database import Base


class Payment(Base):
    """Payment placeholder created with each booking, settled by checkout events."""
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True)
    appointment_id = Column(Integer, ForeignKey("appointments.id"), unique=True, nullable=False)
    amount = Column(Integer, nullable=False)
    deposit_amount = Column(Integer, nullable=False)
    currency = Column(String, nullable=False)
    status = Column(String, nullable=False)
    checkout_session_id = Column(String, index=True)
    payment_intent_id = Column(String, index=True)
    paid_at = Column(DateTime)
    created_at = Column(DateTime, default=datetime.now, nullable=False)

    appointment = relationship("Appointment", back_populates="payment")
