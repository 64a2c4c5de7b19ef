import logging

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from telehealth.auth.dependencies import get_current_identity, get_db
from telehealth.auth.identity import Identity
from telehealth.core import config
from telehealth.routes.common import database_unavailable, ensure_database_ready
from telehealth.services import payments as payment_service

router = APIRouter(tags=['payments'])
logger = logging.getLogger(__name__)


class CheckoutRequest(BaseModel):
    appointment_id: int


class CheckoutResponse(BaseModel):
    url: str


class WebhookResponse(BaseModel):
    received: bool


def get_checkout_client() -> payment_service.StripeCheckoutClient:
    return payment_service.StripeCheckoutClient()


@router.post('/checkout', response_model=CheckoutResponse)
def create_checkout(
    data: CheckoutRequest,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
    client: payment_service.StripeCheckoutClient = Depends(get_checkout_client),
):
    ensure_database_ready()

    try:
        url = payment_service.create_checkout(db, identity, data.appointment_id, client)
        return CheckoutResponse(url=url)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.post('/webhook', response_model=WebhookResponse)
async def payment_webhook(request: Request, db: Session = Depends(get_db)):
    payload = await request.body()
    event = payment_service.construct_payment_event(
        payload,
        request.headers.get('stripe-signature'),
        config.STRIPE_WEBHOOK_SECRET,
    )

    try:
        payment_service.apply_payment_event(db, event)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Webhook processing failed for %s', event.kind)
        raise database_unavailable() from exc

    return WebhookResponse(received=True)
