import logging

import pytest
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.pool import StaticPool

from telehealth import database


@pytest.fixture
def legacy_engine(monkeypatch: pytest.MonkeyPatch):
    engine = create_engine('sqlite://', connect_args={'check_same_thread': False}, poolclass=StaticPool)
    with engine.begin() as connection:
        connection.execute(text(
            'CREATE TABLE appointments ('
            'id INTEGER PRIMARY KEY, patient_id INTEGER, doctor_id INTEGER, scheduled_at TIMESTAMP, '
            'duration_minutes INTEGER, consultation_type VARCHAR, status VARCHAR, created_at TIMESTAMP)'
        ))
    monkeypatch.setattr(database, 'engine', engine)
    monkeypatch.setattr(database, '_appointment_schema_checked', False)
    yield engine
    engine.dispose()


def add_legacy_appointment(engine, status: str) -> None:
    with engine.begin() as connection:
        connection.execute(
            text(
                'INSERT INTO appointments (patient_id, doctor_id, scheduled_at, duration_minutes, '
                'consultation_type, status) VALUES (1, 2, :scheduled_at, 30, :consultation_type, :status)'
            ),
            {'scheduled_at': '2030-01-07 10:00:00', 'consultation_type': 'INITIAL', 'status': status},
        )


def index_names(engine) -> set:
    return {index['name'] for index in inspect(engine).get_indexes('appointments')}


def test_appointment_schema_adds_missing_columns_and_unique_index(legacy_engine) -> None:
    add_legacy_appointment(legacy_engine, 'CONFIRMED')
    add_legacy_appointment(legacy_engine, 'CANCELLED')

    database.ensure_appointment_schema()

    columns = {column['name'] for column in inspect(legacy_engine).get_columns('appointments')}
    assert {'chief_complaint', 'cancelled_at', 'video_room_name'} <= columns
    assert 'uq_appointments_doctor_active_slot' in index_names(legacy_engine)
    assert database._appointment_schema_checked is True


def test_duplicate_active_rows_do_not_block_schema_check(legacy_engine, caplog) -> None:
    add_legacy_appointment(legacy_engine, 'CONFIRMED')
    add_legacy_appointment(legacy_engine, 'PENDING_PAYMENT')

    with caplog.at_level(logging.ERROR, logger='telehealth.database'):
        database.ensure_appointment_schema()

    assert database._appointment_schema_checked is True
    assert 'idx_appointments_doctor_scheduled' in index_names(legacy_engine)
    assert 'uq_appointments_doctor_active_slot' not in index_names(legacy_engine)
    assert 'uq_appointments_doctor_active_slot' in caplog.text
