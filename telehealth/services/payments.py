"""
Payment collaborator.

Checkout sessions are created with the Stripe SDK; Stripe reports the outcome
back through a signed webhook, which is the only thing that confirms an
appointment.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Mapping, Optional

import stripe
from sqlalchemy.orm import Session

from telehealth.auth.identity import Identity
from telehealth.core import config, errors
from telehealth.models.appointment import Appointment
from telehealth.models.enums import AppointmentStatus, ConsultationType, PaymentStatus, can_transition
from telehealth.models.payment import Payment
from telehealth.services.booking import get_appointment
from telehealth.services.pricing import get_consultation_price

logger = logging.getLogger(__name__)

stripe.api_key = config.STRIPE_SECRET_KEY

EVENT_CHECKOUT_COMPLETED = 'checkout.session.completed'
EVENT_CHECKOUT_EXPIRED = 'checkout.session.expired'
EVENT_CHARGE_REFUNDED = 'charge.refunded'


@dataclass(frozen=True)
class PaymentEvent:
    kind: str
    appointment_id: Optional[int] = None
    payment_intent_id: Optional[str] = None


class StripeCheckoutClient:
    def create_checkout_session(
        self,
        appointment_id: int,
        consultation_type: str,
        amount: int,
        customer_email: str,
        doctor_name: str,
        scheduled_at: datetime,
    ):
        label = 'Initial' if consultation_type == ConsultationType.INITIAL else 'Follow-up'

        try:
            return stripe.checkout.Session.create(
                mode='payment',
                payment_method_types=['card'],
                customer_email=customer_email,
                line_items=[
                    {
                        'quantity': 1,
                        'price_data': {
                            'currency': config.PAYMENT_CURRENCY,
                            'unit_amount': amount,
                            'product_data': {
                                'name': f'{label} Consultation',
                                'description': (
                                    f'Telehealth appointment with {doctor_name} on {scheduled_at:%Y-%m-%d %H:%M}'
                                ),
                            },
                        },
                    }
                ],
                metadata={'appointment_id': str(appointment_id)},
                success_url=(
                    f'{config.APP_BASE_URL}/patient/appointments?success=true&session_id={{CHECKOUT_SESSION_ID}}'
                ),
                cancel_url=f'{config.APP_BASE_URL}/patient/appointments?cancelled=true',
            )
        except stripe.StripeError as exc:
            logger.exception('Checkout session creation failed for appointment %s', appointment_id)
            raise errors.ExternalServiceError('Failed to create checkout session.') from exc


def create_checkout(
    db: Session,
    identity: Identity,
    appointment_id: int,
    client: StripeCheckoutClient,
) -> str:
    appointment = get_appointment(db, appointment_id)

    if appointment.patient_id != identity.user_id:
        raise errors.AuthorizationError('Not authorized to pay for this appointment.')

    payment = appointment.payment
    if payment is not None and payment.status == PaymentStatus.COMPLETED:
        raise errors.ValidationError('Payment already completed.')

    if appointment.status != AppointmentStatus.PENDING_PAYMENT:
        raise errors.ValidationError(f'Cannot pay for an appointment that is {appointment.status}.')

    amount = payment.amount if payment is not None and payment.amount else get_consultation_price(
        db,
        ConsultationType(appointment.consultation_type),
    )

    checkout_session = client.create_checkout_session(
        appointment_id=appointment.id,
        consultation_type=appointment.consultation_type,
        amount=amount,
        customer_email=appointment.patient.email,
        doctor_name=f'Dr. {appointment.doctor.full_name}',
        scheduled_at=appointment.scheduled_at,
    )

    if payment is None:
        payment = Payment(
            appointment_id=appointment.id,
            amount=amount,
            deposit_amount=amount,
            currency=config.PAYMENT_CURRENCY,
            status=PaymentStatus.PENDING.value,
        )
        db.add(payment)
    payment.checkout_session_id = checkout_session.id
    db.commit()

    return checkout_session.url


def construct_payment_event(payload: bytes, signature_header: str | None, secret: str) -> PaymentEvent:
    """Verify the ``Stripe-Signature`` header and turn the body into a ``PaymentEvent``."""
    if not signature_header:
        raise errors.ValidationError('Missing stripe-signature header.')

    try:
        event = stripe.Webhook.construct_event(
            payload,
            signature_header,
            secret,
            tolerance=config.STRIPE_WEBHOOK_TOLERANCE_SECONDS,
        )
    except ValueError as exc:
        raise errors.ValidationError('Invalid webhook payload.') from exc
    except stripe.SignatureVerificationError as exc:
        raise errors.ValidationError('Invalid signature.') from exc

    return parse_payment_event(event)


def parse_payment_event(event: Mapping) -> PaymentEvent:
    kind = event.get('type') or ''
    data = (event.get('data') or {}).get('object') or {}

    if kind in (EVENT_CHECKOUT_COMPLETED, EVENT_CHECKOUT_EXPIRED):
        raw_id = (data.get('metadata') or {}).get('appointment_id')
        appointment_id = int(raw_id) if raw_id is not None and str(raw_id).isdigit() else None
        return PaymentEvent(kind=kind, appointment_id=appointment_id, payment_intent_id=data.get('payment_intent'))

    if kind == EVENT_CHARGE_REFUNDED:
        return PaymentEvent(kind=kind, payment_intent_id=data.get('payment_intent'))

    return PaymentEvent(kind=kind)


def _move_appointment(appointment: Appointment, target: AppointmentStatus, now: datetime) -> None:
    if not can_transition(appointment.status, target):
        logger.warning(
            'Skipping transition of appointment %s from %s to %s',
            appointment.id,
            appointment.status,
            target.value,
        )
        return

    appointment.status = target.value
    if target == AppointmentStatus.CANCELLED:
        appointment.cancelled_at = now
        appointment.cancellation_reason = appointment.cancellation_reason or 'Payment refunded'


def apply_payment_event(db: Session, event: PaymentEvent, now: Optional[datetime] = None) -> bool:
    """Apply a provider event. Returns False when the event was ignored."""
    now = now or datetime.now()

    if event.kind in (EVENT_CHECKOUT_COMPLETED, EVENT_CHECKOUT_EXPIRED):
        if event.appointment_id is None:
            logger.warning('Payment event %s without appointment id', event.kind)
            return False

        payment = db.query(Payment).filter(Payment.appointment_id == event.appointment_id).first()
        if payment is None:
            logger.warning('No payment found for appointment %s', event.appointment_id)
            return False

        if event.kind == EVENT_CHECKOUT_COMPLETED:
            payment.status = PaymentStatus.COMPLETED.value
            payment.payment_intent_id = event.payment_intent_id
            payment.paid_at = now
            _move_appointment(payment.appointment, AppointmentStatus.CONFIRMED, now)
            logger.info('Payment completed for appointment %s', event.appointment_id)
        else:
            payment.status = PaymentStatus.FAILED.value
            logger.info('Payment expired for appointment %s', event.appointment_id)

        db.commit()
        return True

    if event.kind == EVENT_CHARGE_REFUNDED:
        if not event.payment_intent_id:
            return False

        payment = db.query(Payment).filter(Payment.payment_intent_id == event.payment_intent_id).first()
        if payment is None:
            logger.warning('No payment found for payment intent %s', event.payment_intent_id)
            return False

        payment.status = PaymentStatus.REFUNDED.value
        _move_appointment(payment.appointment, AppointmentStatus.CANCELLED, now)
        db.commit()
        logger.info('Refund processed for payment %s', payment.id)
        return True

    logger.info('Unhandled payment event type: %s', event.kind)
    return False
