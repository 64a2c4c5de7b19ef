import os
from datetime import date, timedelta
from itertools import count

import pytest

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from telehealth.auth.identity import Identity  # noqa: E402
from telehealth.database import Base  # noqa: E402
from telehealth.models import appointment, availability, clinic_settings, payment  # noqa: E402,F401
from telehealth.models.enums import UserRole  # noqa: E402
from telehealth.models.user import User  # noqa: E402


@pytest.fixture
def db():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def make_user(db):
    sequence = count(1)

    def _make_user(role: UserRole = UserRole.PATIENT, first_name: str = 'Test', last_name: str = 'User', **kwargs):
        number = next(sequence)
        user = User(
            email=kwargs.pop('email', f'{role.value.lower()}{number}@clinic.test'),
            first_name=first_name,
            last_name=last_name,
            role=role.value,
            is_active=kwargs.pop('is_active', True),
            **kwargs,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def doctor(make_user):
    return make_user(UserRole.DOCTOR, first_name='Sarah', last_name='Smith')


@pytest.fixture
def patient(make_user):
    return make_user(UserRole.PATIENT, first_name='Alex', last_name='Jones')


@pytest.fixture
def future_monday() -> date:
    """A Monday at least a week ahead of today."""
    start = date.today() + timedelta(days=7)
    return start + timedelta(days=(7 - start.weekday()) % 7)


@pytest.fixture
def identity_for():
    def _identity_for(user: User) -> Identity:
        return Identity(user_id=user.id, role=UserRole(user.role))

    return _identity_for
