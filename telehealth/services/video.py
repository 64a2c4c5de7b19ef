"""Video-room collaborator: private two-person rooms and per-participant join tokens."""

import logging
import time
from dataclasses import dataclass

import requests
from sqlalchemy.orm import Session

from telehealth.auth.identity import Identity
from telehealth.core import config, errors
from telehealth.models.enums import AppointmentStatus
from telehealth.models.user import User
from telehealth.services.booking import get_appointment, is_participant
from telehealth.services.http_client import create_http_session

logger = logging.getLogger(__name__)

VIDEO_READY_STATUSES = (AppointmentStatus.CONFIRMED, AppointmentStatus.IN_PROGRESS)


@dataclass(frozen=True)
class VideoRoom:
    name: str
    url: str


class DailyVideoClient:
    def __init__(self, api_key: str | None = None, api_url: str | None = None, session=None):
        self.api_key = api_key if api_key is not None else config.DAILY_API_KEY
        self.api_url = (api_url or config.DAILY_API_URL).rstrip('/')
        self.session = session or create_http_session()

    @property
    def headers(self) -> dict:
        return {'Authorization': f'Bearer {self.api_key}'}

    def _expiry(self) -> int:
        return int(time.time()) + config.VIDEO_ROOM_TTL_MINUTES * 60

    def room_name_for(self, appointment_id: int) -> str:
        return f'{config.VIDEO_ROOM_PREFIX}-{appointment_id}'

    def create_room(self, appointment_id: int) -> VideoRoom:
        room_name = self.room_name_for(appointment_id)
        body = {
            'name': room_name,
            'privacy': 'private',
            'properties': {
                'enable_screenshare': True,
                'enable_chat': True,
                'max_participants': 2,
                'exp': self._expiry(),
                'enable_knocking': True,
                'start_video_off': False,
                'start_audio_off': False,
            },
        }

        try:
            response = self.session.post(
                f'{self.api_url}/rooms',
                json=body,
                headers=self.headers,
                timeout=config.HTTP_TIMEOUT_SECONDS,
            )
        except requests.RequestException as exc:
            raise errors.ExternalServiceError('Failed to create room.') from exc

        # 400 means the room name is taken; reuse it.
        if response.status_code == 400:
            return self.get_room(room_name)
        if not response.ok:
            raise errors.ExternalServiceError(f'Failed to create room: {response.reason}')

        payload = response.json()
        return VideoRoom(name=payload['name'], url=payload['url'])

    def get_room(self, room_name: str) -> VideoRoom:
        try:
            response = self.session.get(
                f'{self.api_url}/rooms/{room_name}',
                headers=self.headers,
                timeout=config.HTTP_TIMEOUT_SECONDS,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            raise errors.ExternalServiceError('Failed to get room.') from exc

        payload = response.json()
        return VideoRoom(name=payload['name'], url=payload['url'])

    def create_meeting_token(self, room_name: str, participant_name: str, is_owner: bool = False) -> str:
        body = {
            'properties': {
                'room_name': room_name,
                'user_name': participant_name,
                'is_owner': is_owner,
                'enable_screenshare': True,
                'start_video_off': False,
                'start_audio_off': False,
                'exp': self._expiry(),
            },
        }

        try:
            response = self.session.post(
                f'{self.api_url}/meeting-tokens',
                json=body,
                headers=self.headers,
                timeout=config.HTTP_TIMEOUT_SECONDS,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            raise errors.ExternalServiceError('Failed to create meeting token.') from exc

        return response.json()['token']


def ensure_video_room(db: Session, identity: Identity, appointment_id: int, client: DailyVideoClient) -> VideoRoom:
    appointment = get_appointment(db, appointment_id)

    if not is_participant(identity, appointment):
        raise errors.AuthorizationError('Not authorized for this appointment.')

    if appointment.status not in VIDEO_READY_STATUSES:
        raise errors.ValidationError(f'Video is not available for an appointment that is {appointment.status}.')

    if appointment.video_room_name and appointment.video_room_url:
        return VideoRoom(name=appointment.video_room_name, url=appointment.video_room_url)

    room = client.create_room(appointment.id)
    appointment.video_room_name = room.name
    appointment.video_room_url = room.url
    db.commit()

    logger.info('Created video room %s for appointment %s', room.name, appointment.id)
    return room


def issue_join_token(db: Session, identity: Identity, appointment_id: int, client: DailyVideoClient) -> str:
    appointment = get_appointment(db, appointment_id)

    if not appointment.video_room_name:
        raise errors.NotFoundError('Appointment or room not found.')

    if not is_participant(identity, appointment):
        raise errors.AuthorizationError('Not authorized for this appointment.')

    user = db.query(User).filter(User.id == identity.user_id).first()
    is_doctor = identity.user_id == appointment.doctor_id
    participant_name = user.full_name if user else str(identity.user_id)
    if is_doctor:
        participant_name = f'Dr. {participant_name}'

    return client.create_meeting_token(appointment.video_room_name, participant_name, is_owner=is_doctor)
