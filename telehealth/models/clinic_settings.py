"""Clinic-wide settings."""

from sqlalchemy import Column, Integer, String
from telehealth.database import Base


class ClinicSettings(Base):
    __tablename__ = "clinic_settings"

    id = Column(Integer, primary_key=True)
    name = Column(String)
    initial_consult_price = Column(Integer)
    follow_up_consult_price = Column(Integer)
