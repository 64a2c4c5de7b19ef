import logging
from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import declarative_base, sessionmaker

from telehealth.core import config


engine = create_engine(config.DATABASE_URL, echo=config.DATABASE_ECHO)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()
logger = logging.getLogger(__name__)

_schema_lock = Lock()
_availability_schema_checked = False
_appointment_schema_checked = False


def ensure_availability_schema() -> None:
    global _availability_schema_checked

    if _availability_schema_checked:
        return

    with _schema_lock:
        if _availability_schema_checked:
            return

        inspector = inspect(engine)

        if 'availability_windows' not in inspector.get_table_names():
            _availability_schema_checked = True
            return

        existing_columns = {column['name'] for column in inspector.get_columns('availability_windows')}
        migration_steps = [
            ('specific_date', 'ALTER TABLE availability_windows ADD COLUMN specific_date DATE'),
            ('is_blocked', 'ALTER TABLE availability_windows ADD COLUMN is_blocked BOOLEAN DEFAULT FALSE'),
        ]

        with engine.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            connection.execute(
                text(
                    'CREATE INDEX IF NOT EXISTS idx_availability_doctor_day '
                    'ON availability_windows(doctor_id, day_of_week)'
                )
            )
            connection.execute(
                text(
                    'CREATE INDEX IF NOT EXISTS idx_availability_doctor_date '
                    'ON availability_windows(doctor_id, specific_date)'
                )
            )

        _availability_schema_checked = True


def ensure_appointment_schema() -> None:
    global _appointment_schema_checked

    if _appointment_schema_checked:
        return

    with _schema_lock:
        if _appointment_schema_checked:
            return

        inspector = inspect(engine)

        if 'appointments' not in inspector.get_table_names():
            _appointment_schema_checked = True
            return

        existing_columns = {column['name'] for column in inspector.get_columns('appointments')}
        migration_steps = [
            ('chief_complaint', 'ALTER TABLE appointments ADD COLUMN chief_complaint VARCHAR'),
            ('cancelled_at', 'ALTER TABLE appointments ADD COLUMN cancelled_at TIMESTAMP'),
            ('cancellation_reason', 'ALTER TABLE appointments ADD COLUMN cancellation_reason VARCHAR'),
            ('video_room_name', 'ALTER TABLE appointments ADD COLUMN video_room_name VARCHAR'),
            ('video_room_url', 'ALTER TABLE appointments ADD COLUMN video_room_url VARCHAR'),
        ]

        with engine.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            connection.execute(
                text(
                    'CREATE INDEX IF NOT EXISTS idx_appointments_doctor_scheduled '
                    'ON appointments(doctor_id, scheduled_at)'
                )
            )

        try:
            with engine.begin() as connection:
                connection.execute(
                    text(
                        'CREATE UNIQUE INDEX IF NOT EXISTS uq_appointments_doctor_active_slot '
                        'ON appointments(doctor_id, scheduled_at) '
                        "WHERE status IN ('CONFIRMED', 'PENDING_PAYMENT', 'IN_PROGRESS')"
                    )
                )
        except IntegrityError:
            # Existing duplicate active bookings; the booking re-check still applies.
            logger.exception(
                'Could not create uq_appointments_doctor_active_slot. '
                'Resolve duplicate active appointments per doctor and start time.'
            )

        _appointment_schema_checked = True
