import jwt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from telehealth.auth import jwt_handler
from telehealth.auth.identity import Identity
from telehealth.database import SessionLocal
from telehealth.models.enums import UserRole
from telehealth.models.user import User

security = HTTPBearer()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    try:
        payload = jwt_handler.decode_access_token(credentials.credentials)
    except jwt.PyJWTError as exc:
        raise HTTPException(status_code=401, detail="Invalid token") from exc

    user_id = jwt_handler.token_user_id(payload)
    if user_id is None:
        raise HTTPException(status_code=401, detail="Invalid token subject")

    user = db.query(User).filter(User.id == user_id).first()
    if user is None or not user.is_active:
        raise HTTPException(status_code=401, detail="User not found")
    return user


def get_current_identity(current_user: User = Depends(get_current_user)) -> Identity:
    try:
        role = UserRole(current_user.role)
    except ValueError as exc:
        raise HTTPException(status_code=401, detail="Unknown user role") from exc
    return Identity(user_id=current_user.id, role=role)
