import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from telehealth.core import config
from telehealth.core.errors import TelehealthError
from telehealth.database import Base, engine, ensure_availability_schema, ensure_appointment_schema
from telehealth.models import appointment, availability, clinic_settings, payment, user  # noqa: F401
from telehealth.routes import (
    appointment_routes,
    auth_routes,
    availability_routes,
    payment_routes,
    video_routes,
)

app = FastAPI(title='Telehealth Clinic API')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

logger = logging.getLogger(__name__)


@app.on_event('startup')
def initialize_database() -> None:
    config.validate_runtime_config()
    try:
        Base.metadata.create_all(bind=engine)
        ensure_availability_schema()
        ensure_appointment_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')


@app.exception_handler(TelehealthError)
async def handle_telehealth_error(request: Request, exc: TelehealthError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={'detail': exc.detail})


@app.get('/')
def root():
    return {'status': 'Telehealth Clinic API Running'}


app.include_router(auth_routes.router, prefix='/auth')
app.include_router(availability_routes.router, prefix='/availability')
app.include_router(appointment_routes.router, prefix='/appointments')
app.include_router(payment_routes.router, prefix='/payments')
app.include_router(video_routes.router, prefix='/video')
