"""Device endpoints for the authenticated user.

Devices are the notification endpoints (Telegram chat, APNs or Firebase
token, web push subscription, mail address) a user registered. All
routes act on the `userId` of the caller's token.
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from . import models
from .auth import get_token_payload
from .database import get_session
from .repositories import DeviceRepository
from .schemas import DeviceIn, DeviceOut, DeviceRemoveIn
from .utils.dates import convert_mysql_date

router = APIRouter(prefix="/user/devices", tags=["devices"])


def get_devices(db: Session = Depends(get_session)) -> DeviceRepository:
    return DeviceRepository(db)


def _device_out(d: models.Device) -> DeviceOut:
    return DeviceOut(
        id=d.id,
        userId=d.user_id,
        platform=d.platform,
        deviceIdentifier=d.device_identifier,
        added=convert_mysql_date(d.time_added),
        verified=d.verified,
    )


def _own_devices(devices: DeviceRepository, user_id: int) -> List[models.Device]:
    try:
        return devices.get_by_uid(user_id)
    except SQLAlchemyError:
        raise HTTPException(status_code=500)


@router.get('', response_model=List[DeviceOut])
def list_devices(payload: dict = Depends(get_token_payload), devices: DeviceRepository = Depends(get_devices)):
    """List the caller's registered devices."""
    return [_device_out(d) for d in _own_devices(devices, payload['userId'])]


@router.post('')
def add_device(body: DeviceIn, payload: dict = Depends(get_token_payload), devices: DeviceRepository = Depends(get_devices)):
    """Register a device for the caller.

    `created` is false when the identifier is already registered; the
    existing registration is left untouched.
    """
    device = models.Device(user_id=payload['userId'], platform=int(body.platform), device_identifier=body.deviceIdentifier)
    try:
        created = devices.save(device)
    except SQLAlchemyError:
        raise HTTPException(status_code=500)
    return {'created': created, 'id': device.id}


@router.post('/remove')
def remove_device(body: DeviceRemoveIn, payload: dict = Depends(get_token_payload), devices: DeviceRepository = Depends(get_devices)):
    """Remove one of the caller's devices by identifier.

    Unknown identifiers are accepted silently.
    """
    owned = {d.device_identifier for d in _own_devices(devices, payload['userId'])}
    if body.deviceIdentifier in owned:
        try:
            devices.remove_device(body.deviceIdentifier)
        except SQLAlchemyError:
            raise HTTPException(status_code=500)
    return {'status': 'ok'}


@router.delete('/{device_id}')
def delete_device(device_id: int, payload: dict = Depends(get_token_payload), devices: DeviceRepository = Depends(get_devices)):
    """Delete one of the caller's devices by its numeric id."""
    device = next((d for d in _own_devices(devices, payload['userId']) if d.id == device_id), None)
    if device is None:
        raise HTTPException(status_code=404, detail='device not found')
    try:
        devices.delete(device)
    except SQLAlchemyError:
        raise HTTPException(status_code=500)
    return {'status': 'ok'}
