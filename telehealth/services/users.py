from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from telehealth.core import errors
from telehealth.models.enums import UserRole
from telehealth.models.user import User


def register_patient(
    db: Session,
    email: str,
    first_name: str,
    last_name: str,
    phone: Optional[str] = None,
) -> User:
    if db.query(User).filter(User.email == email).first() is not None:
        raise errors.ConflictError('An account with this email already exists.')

    user = User(
        email=email,
        first_name=first_name,
        last_name=last_name,
        phone=phone,
        role=UserRole.PATIENT.value,
        is_active=True,
    )
    db.add(user)

    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise errors.ConflictError('An account with this email already exists.') from exc

    db.refresh(user)
    return user
