from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from telehealth.auth.dependencies import get_current_identity, get_db
from telehealth.auth.identity import Identity
from telehealth.routes.common import database_unavailable, ensure_database_ready
from telehealth.services import video as video_service

router = APIRouter(tags=['video'])


class VideoRequest(BaseModel):
    appointment_id: int


class RoomResponse(BaseModel):
    room_name: str
    room_url: str


class TokenResponse(BaseModel):
    token: str


def get_video_client() -> video_service.DailyVideoClient:
    return video_service.DailyVideoClient()


@router.post('/room', response_model=RoomResponse)
def create_room(
    data: VideoRequest,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
    client: video_service.DailyVideoClient = Depends(get_video_client),
):
    ensure_database_ready()

    try:
        room = video_service.ensure_video_room(db, identity, data.appointment_id, client)
        return RoomResponse(room_name=room.name, room_url=room.url)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.post('/token', response_model=TokenResponse)
def create_token(
    data: VideoRequest,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
    client: video_service.DailyVideoClient = Depends(get_video_client),
):
    ensure_database_ready()

    try:
        return TokenResponse(token=video_service.issue_join_token(db, identity, data.appointment_id, client))
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc
