from sqlalchemy.orm import Session

from telehealth.core import config
from telehealth.models.clinic_settings import ClinicSettings
from telehealth.models.enums import ConsultationType


def get_consultation_price(db: Session, consultation_type: ConsultationType) -> int:
    """Price in minor currency units, from clinic settings or the configured fallback."""
    settings = db.query(ClinicSettings).order_by(ClinicSettings.id.asc()).first()

    if consultation_type == ConsultationType.INITIAL:
        configured = settings.initial_consult_price if settings else None
        return configured if configured is not None else config.DEFAULT_INITIAL_CONSULT_PRICE

    configured = settings.follow_up_consult_price if settings else None
    return configured if configured is not None else config.DEFAULT_FOLLOW_UP_CONSULT_PRICE
