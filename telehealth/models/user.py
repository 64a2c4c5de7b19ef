"""User model definitions."""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Integer, String
from telehealth.database import Base


class User(Base):
    """Represents a patient, doctor or clinic staff member."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    phone = Column(String)
    role = Column(String, nullable=False)  # see UserRole
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.now, nullable=False)

    @property
    def full_name(self) -> str:
        return f'{self.first_name} {self.last_name}'.strip()
