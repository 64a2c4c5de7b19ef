from types import SimpleNamespace
from unittest.mock import Mock

import pytest
import stripe

from telehealth.main import app
from telehealth.routes import payment_routes

SECRET = 'whsec_routes'
SIGNATURE = {'stripe-signature': 't=1900000000,v1=abc'}


@pytest.fixture
def webhook_secret(monkeypatch: pytest.MonkeyPatch) -> str:
    monkeypatch.setattr('telehealth.core.config.STRIPE_WEBHOOK_SECRET', SECRET)
    return SECRET


@pytest.fixture
def construct_event(monkeypatch: pytest.MonkeyPatch) -> Mock:
    construct = Mock()
    monkeypatch.setattr(stripe.Webhook, 'construct_event', construct)
    return construct


@pytest.fixture
def checkout_client(client):
    fake = Mock()
    fake.create_checkout_session.return_value = SimpleNamespace(id='cs_route', url='https://checkout.test/cs_route')
    app.dependency_overrides[payment_routes.get_checkout_client] = lambda: fake
    return fake


@pytest.fixture
def booked(client, doctor, patient, auth_headers, future_monday) -> dict:
    response = client.post(
        '/appointments',
        json={'doctor_id': doctor.id, 'consultation_type': 'INITIAL', 'date': future_monday.isoformat(), 'time': '10:00'},
        headers=auth_headers(patient),
    )
    return response.json()


def completed_event(appointment_id: int) -> dict:
    return {
        'type': 'checkout.session.completed',
        'data': {'object': {'metadata': {'appointment_id': str(appointment_id)}, 'payment_intent': 'pi_route'}},
    }


def test_checkout_returns_provider_url(client, checkout_client, patient, auth_headers, booked) -> None:
    response = client.post('/payments/checkout', json={'appointment_id': booked['id']}, headers=auth_headers(patient))

    assert response.status_code == 200
    assert response.json() == {'url': 'https://checkout.test/cs_route'}
    assert checkout_client.create_checkout_session.call_args.kwargs['amount'] == 50000


def test_checkout_for_someone_elses_appointment_is_forbidden(
    client, checkout_client, doctor, auth_headers, booked
) -> None:
    response = client.post('/payments/checkout', json={'appointment_id': booked['id']}, headers=auth_headers(doctor))

    assert response.status_code == 403
    checkout_client.create_checkout_session.assert_not_called()


def test_webhook_confirms_appointment(
    client, webhook_secret, construct_event, patient, auth_headers, booked
) -> None:
    construct_event.return_value = completed_event(booked['id'])

    response = client.post('/payments/webhook', content=b'{"id": "evt_1"}', headers=SIGNATURE)

    assert response.status_code == 200
    assert response.json() == {'received': True}
    args = construct_event.call_args.args
    assert args == (b'{"id": "evt_1"}', SIGNATURE['stripe-signature'], SECRET)
    upcoming = client.get('/appointments/upcoming', headers=auth_headers(patient)).json()
    assert upcoming[0]['status'] == 'CONFIRMED'
    assert upcoming[0]['payment_status'] == 'COMPLETED'


def test_webhook_with_bad_signature_is_rejected(
    client, webhook_secret, construct_event, patient, auth_headers, booked
) -> None:
    construct_event.side_effect = stripe.SignatureVerificationError('No signatures found', 't=1,v1=bad')

    response = client.post('/payments/webhook', content=b'{}', headers=SIGNATURE)

    assert response.status_code == 400
    assert response.json() == {'detail': 'Invalid signature.'}
    upcoming = client.get('/appointments/upcoming', headers=auth_headers(patient)).json()
    assert upcoming[0]['status'] == 'PENDING_PAYMENT'


def test_webhook_without_signature_is_rejected(client, webhook_secret, construct_event) -> None:
    response = client.post('/payments/webhook', content=b'{}')

    assert response.status_code == 400
    assert response.json() == {'detail': 'Missing stripe-signature header.'}
    construct_event.assert_not_called()


def test_webhook_acknowledges_unhandled_event_types(client, webhook_secret, construct_event) -> None:
    construct_event.return_value = {'type': 'invoice.paid', 'data': {'object': {}}}

    response = client.post('/payments/webhook', content=b'{}', headers=SIGNATURE)

    assert response.status_code == 200
