from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from telehealth.auth import jwt_handler
from telehealth.auth.dependencies import get_current_user, get_db
from telehealth.models.user import User
from telehealth.routes.common import database_unavailable, ensure_database_ready
from telehealth.services.users import register_patient

router = APIRouter(tags=['auth'])


class RegisterPatientRequest(BaseModel):
    email: str
    first_name: str
    last_name: str
    phone: str | None = None

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str) -> str:
        normalized = value.strip().lower()
        if not normalized or '@' not in normalized:
            raise ValueError('A valid email is required.')
        return normalized

    @field_validator('first_name', 'last_name')
    @classmethod
    def validate_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Name is required.')
        return normalized

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = 'bearer'


class MeResponse(BaseModel):
    id: int
    email: str
    first_name: str
    last_name: str
    role: str


@router.post('/register', response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def register(data: RegisterPatientRequest, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        user = register_patient(db, data.email, data.first_name, data.last_name, data.phone)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    return TokenResponse(access_token=jwt_handler.create_access_token(user.id))


@router.get('/me', response_model=MeResponse)
def me(current_user: User = Depends(get_current_user)):
    return MeResponse(
        id=current_user.id,
        email=current_user.email,
        first_name=current_user.first_name,
        last_name=current_user.last_name,
        role=current_user.role,
    )
