"""Decoding of Pub/Sub push deliveries carrying developer notifications."""

from __future__ import annotations

import base64
import binascii
import json
from logging import getLogger
from typing import TYPE_CHECKING

from pydantic import ValidationError

from billingsync.domain.errors import MalformedNotificationError

from .schema import DeveloperNotificationPayload, PubSubPushEnvelope
from .translator import parse_developer_notification

if TYPE_CHECKING:
    from billingsync.domain.notifications import DeveloperNotification

log = getLogger(__name__)


def decode_push_envelope(body: bytes | str) -> tuple[PubSubPushEnvelope, DeveloperNotification]:
    """Parse a push body and the base64 JSON notification inside ``message.data``."""

    try:
        envelope = PubSubPushEnvelope.model_validate_json(body)
    except ValidationError as exc:
        log.warning("Rejected push delivery with invalid envelope (%s errors)", exc.error_count())
        raise MalformedNotificationError("Invalid Pub/Sub push envelope") from exc

    try:
        raw = base64.b64decode(envelope.message.data, validate=True)
    except (binascii.Error, ValueError) as exc:
        log.warning("Rejected message %s: data is not valid base64", envelope.message.message_id)
        raise MalformedNotificationError("Message data is not valid base64") from exc

    return envelope, decode_notification_data(raw, message_id=envelope.message.message_id)


def decode_notification_data(raw: bytes | str, *, message_id: str | None = None) -> DeveloperNotification:
    """Parse the JSON developer notification carried by a push message."""

    try:
        decoded = json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        log.warning("Rejected message %s: data is not valid JSON", message_id)
        raise MalformedNotificationError("Message data is not valid JSON") from exc

    try:
        payload = DeveloperNotificationPayload.model_validate(decoded)
    except ValidationError as exc:
        log.warning(
            "Rejected message %s: not a developer notification (%s errors)",
            message_id,
            exc.error_count(),
        )
        raise MalformedNotificationError("Message data is not a developer notification") from exc

    return parse_developer_notification(payload)
