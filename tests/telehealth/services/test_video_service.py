from datetime import datetime
from unittest.mock import Mock

import pytest

from telehealth.core import errors
from telehealth.models.appointment import Appointment
from telehealth.models.enums import AppointmentStatus, ConsultationType, UserRole
from telehealth.services import video


@pytest.fixture
def confirmed_appointment(db, doctor, patient):
    appointment = Appointment(
        patient_id=patient.id,
        doctor_id=doctor.id,
        scheduled_at=datetime(2030, 1, 7, 10, 0),
        duration_minutes=30,
        consultation_type=ConsultationType.INITIAL.value,
        status=AppointmentStatus.CONFIRMED.value,
    )
    db.add(appointment)
    db.commit()
    db.refresh(appointment)
    return appointment


def fake_client() -> Mock:
    client = Mock()
    client.create_room.return_value = video.VideoRoom(name='telehealth-1', url='https://video.test/telehealth-1')
    client.create_meeting_token.return_value = 'token-abc'
    return client


def test_participant_gets_new_room_stored_on_appointment(db, patient, confirmed_appointment, identity_for) -> None:
    client = fake_client()

    room = video.ensure_video_room(db, identity_for(patient), confirmed_appointment.id, client)

    assert room.url == 'https://video.test/telehealth-1'
    db.refresh(confirmed_appointment)
    assert confirmed_appointment.video_room_name == 'telehealth-1'
    assert confirmed_appointment.video_room_url == 'https://video.test/telehealth-1'


def test_existing_room_is_reused(db, doctor, confirmed_appointment, identity_for) -> None:
    client = fake_client()
    video.ensure_video_room(db, identity_for(doctor), confirmed_appointment.id, client)

    video.ensure_video_room(db, identity_for(doctor), confirmed_appointment.id, client)

    assert client.create_room.call_count == 1


def test_non_participant_cannot_open_room(db, make_user, confirmed_appointment, identity_for) -> None:
    reception = make_user(UserRole.RECEPTION)

    with pytest.raises(errors.AuthorizationError):
        video.ensure_video_room(db, identity_for(reception), confirmed_appointment.id, fake_client())


def test_unpaid_appointment_has_no_room(db, patient, confirmed_appointment, identity_for) -> None:
    confirmed_appointment.status = AppointmentStatus.PENDING_PAYMENT.value
    db.commit()

    with pytest.raises(errors.ValidationError):
        video.ensure_video_room(db, identity_for(patient), confirmed_appointment.id, fake_client())


def test_doctor_token_is_owner_token(db, doctor, confirmed_appointment, identity_for) -> None:
    client = fake_client()
    video.ensure_video_room(db, identity_for(doctor), confirmed_appointment.id, client)

    token = video.issue_join_token(db, identity_for(doctor), confirmed_appointment.id, client)

    assert token == 'token-abc'
    client.create_meeting_token.assert_called_once_with('telehealth-1', 'Dr. Sarah Smith', is_owner=True)


def test_patient_token_is_not_owner(db, patient, confirmed_appointment, identity_for) -> None:
    client = fake_client()
    video.ensure_video_room(db, identity_for(patient), confirmed_appointment.id, client)

    video.issue_join_token(db, identity_for(patient), confirmed_appointment.id, client)

    client.create_meeting_token.assert_called_once_with('telehealth-1', 'Alex Jones', is_owner=False)


def test_token_without_room_is_not_found(db, patient, confirmed_appointment, identity_for) -> None:
    with pytest.raises(errors.NotFoundError):
        video.issue_join_token(db, identity_for(patient), confirmed_appointment.id, fake_client())


def test_client_reuses_room_when_name_taken() -> None:
    session = Mock()
    session.post.return_value = Mock(status_code=400, ok=False)
    session.get.return_value.json.return_value = {'name': 'telehealth-5', 'url': 'https://video.test/telehealth-5'}
    client = video.DailyVideoClient(api_key='key', api_url='https://daily.test/v1', session=session)

    room = client.create_room(5)

    assert room == video.VideoRoom(name='telehealth-5', url='https://video.test/telehealth-5')
    assert session.get.call_args.args[0] == 'https://daily.test/v1/rooms/telehealth-5'


def test_client_creates_private_two_person_room() -> None:
    session = Mock()
    session.post.return_value = Mock(status_code=200, ok=True)
    session.post.return_value.json.return_value = {'name': 'telehealth-5', 'url': 'https://video.test/telehealth-5'}
    client = video.DailyVideoClient(api_key='key', api_url='https://daily.test/v1', session=session)

    client.create_room(5)

    kwargs = session.post.call_args.kwargs
    assert kwargs['headers'] == {'Authorization': 'Bearer key'}
    assert kwargs['json']['privacy'] == 'private'
    assert kwargs['json']['properties']['max_participants'] == 2


def test_client_raises_on_provider_failure() -> None:
    session = Mock()
    session.post.return_value = Mock(status_code=500, ok=False, reason='Server Error')
    client = video.DailyVideoClient(api_key='key', session=session)

    with pytest.raises(errors.ExternalServiceError):
        client.create_room(5)
