"""Notification message value object and its wire codec.

A :class:`NotificationMessage` describes one notification occurrence. It is
immutable: updates go through :meth:`NotificationMessage.copy_with`, which
re-runs validation on the new value.

Wire format (used for transport data, tray payloads and history records)::

    {
        "id": "9f0c...",
        "notificationId": 118229,
        "recipients": ["device-token-1"],
        "topic": "news",
        "channel": "promo",
        "title": "Sale",
        "body": "Everything 20% off",
        "importance": "high",
        "playSound": true,
        "scheduleAt": {"sendAt": "2026-01-01T09:00:00", "timeZone": "Europe/Berlin"},
        "targetedUserId": "user-1",
        "createdAt": 1767225600000,
        "isSeen": false,
        "payload": {"deep_link": "/offers"}
    }

Keys whose value is ``None`` are omitted.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pushrelay.core.domain.channel import Importance
from pushrelay.core.domain.errors import DecodeError, InvalidMessageError, RenderError
from pushrelay.core.utils.time import from_epoch_ms, to_epoch_ms, utc_now

TOPIC_PREFIX = "/topics/"
TRANSPORT_CONTENT_KEY = "content"

_NOTIFICATION_ID_MASK = 0x7FFFFFFF
MAX_NOTIFICATION_ID = _NOTIFICATION_ID_MASK


def derive_notification_id(message_id: str) -> int:
    """Derive the tray handle for ``message_id``.

    The same id always maps to the same non-negative 32-bit integer, so every
    retry and every device sees the same handle for one logical message.
    """
    digest = hashlib.sha256(message_id.encode("utf-8")).digest()
    return int.from_bytes(digest[:4], "big") & _NOTIFICATION_ID_MASK


@dataclass(frozen=True)
class Schedule:
    """Deferred delivery time for a notification."""

    send_at: datetime
    timezone: str | None = None

    def resolve_send_at(self) -> datetime:
        """Return ``send_at`` as an aware datetime.

        A naive ``send_at`` is interpreted in ``timezone``, or UTC when no
        timezone is given.

        Raises:
            RenderError: If ``timezone`` is not a known IANA zone.
        """
        if self.send_at.tzinfo is not None:
            return self.send_at
        if not self.timezone:
            return self.send_at.replace(tzinfo=UTC)
        try:
            zone = ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise RenderError(
                f"Unknown schedule timezone: {self.timezone}",
                details={"timezone": self.timezone, "error": str(exc)},
            ) from exc
        return self.send_at.replace(tzinfo=zone)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"sendAt": self.send_at.isoformat()}
        if self.timezone:
            data["timeZone"] = self.timezone
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Schedule":
        return cls(
            send_at=datetime.fromisoformat(str(data["sendAt"])),
            timezone=data.get("timeZone"),
        )


@dataclass(frozen=True)
class NotificationMessage:
    """One notification occurrence.

    Attributes:
        id: Opaque unique identity, generated when not given.
        notification_id: Integer tray handle, derived from ``id`` when not given.
        recipients: Per-device target identifiers, in send order.
        topic: Topic name; when set it is the only transport target.
        channel: Channel id; unknown or missing ids use the default channel.
        title: Notification title.
        body: Notification body.
        image_url: Optional image shown with the notification.
        importance: Per-message override of the channel importance.
        play_sound: Per-message override of the channel sound flag.
        schedule: When set, the notification is scheduled instead of shown.
        targeted_user_id: Owner of the history record.
        created_at: Construction time; naive values are taken as UTC.
        seen: Seen state, changed only by the history store.
        payload: Opaque key/value data passed through unmodified.

    Raises:
        InvalidMessageError: If neither recipients nor a topic are given, or
            if both title and body are missing, or if
            ``notification_id`` is outside the 32-bit tray handle range.
    """

    recipients: tuple[str, ...] = ()
    topic: str | None = None
    title: str | None = None
    body: str | None = None
    channel: str | None = None
    id: str = field(default_factory=lambda: uuid4().hex)
    notification_id: int | None = None
    image_url: str | None = None
    importance: Importance | None = None
    play_sound: bool | None = None
    schedule: Schedule | None = None
    targeted_user_id: str | None = None
    created_at: datetime = field(default_factory=utc_now)
    seen: bool = False
    payload: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if isinstance(self.recipients, str):
            raise InvalidMessageError(
                "recipients must be a sequence of identifiers, not a string",
                details={"recipients": self.recipients},
            )
        object.__setattr__(self, "recipients", tuple(self.recipients))
        if not self.topic:
            object.__setattr__(self, "topic", None)
        if not self.id:
            raise InvalidMessageError("Notification id must not be empty")
        if self.notification_id is None:
            object.__setattr__(self, "notification_id", derive_notification_id(self.id))
        elif (
            isinstance(self.notification_id, bool)
            or not isinstance(self.notification_id, int)
            or not 0 <= self.notification_id <= MAX_NOTIFICATION_ID
        ):
            raise InvalidMessageError(
                "notification_id must be a 32-bit non-negative integer",
                details={"notification_id": self.notification_id},
            )
        if self.created_at.tzinfo is None:
            object.__setattr__(self, "created_at", self.created_at.replace(tzinfo=UTC))
        if self.importance is not None and not isinstance(self.importance, Importance):
            object.__setattr__(self, "importance", Importance.parse(self.importance))
        object.__setattr__(self, "payload", dict(self.payload or {}))

        if not self.recipients and self.topic is None:
            raise InvalidMessageError(
                "A notification needs at least one recipient or a topic",
                details={"id": self.id},
            )
        if not self.title and not self.body:
            raise InvalidMessageError(
                "A notification needs a title or a body",
                details={"id": self.id},
            )

    @property
    def is_topic(self) -> bool:
        return self.topic is not None

    def targets(self) -> tuple[str, ...]:
        """Return the transport targets for this message."""
        if self.topic is not None:
            return (f"{TOPIC_PREFIX}{self.topic}",)
        return self.recipients

    def copy_with(self, **changes: Any) -> "NotificationMessage":
        """Return a new message with ``changes`` applied."""
        if "id" in changes and "notification_id" not in changes:
            changes["notification_id"] = None
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        """Serialize the message to its wire/persisted form."""
        data: dict[str, Any] = {
            "id": self.id,
            "notificationId": self.notification_id,
            "recipients": list(self.recipients),
            "topic": self.topic,
            "channel": self.channel,
            "title": self.title,
            "body": self.body,
            "imageUrl": self.image_url,
            "importance": self.importance.value if self.importance else None,
            "playSound": self.play_sound,
            "scheduleAt": self.schedule.to_dict() if self.schedule else None,
            "targetedUserId": self.targeted_user_id,
            "createdAt": to_epoch_ms(self.created_at),
            "isSeen": self.seen,
            "payload": self.payload or None,
        }
        return {key: value for key, value in data.items() if value is not None}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "NotificationMessage":
        """Deserialize a message from its wire/persisted form.

        Raises:
            KeyError: If ``id`` or ``createdAt`` is missing.
            TypeError, ValueError: If a field has the wrong shape.
            OverflowError, OSError: If ``createdAt`` is out of range.
            InvalidMessageError: If the decoded message violates an invariant.
        """
        recipients = data.get("recipients") or ()
        if isinstance(recipients, str) or not isinstance(recipients, (list, tuple)):
            raise TypeError("recipients must be a list")
        payload = data.get("payload") or {}
        if not isinstance(payload, Mapping):
            raise TypeError("payload must be an object")
        schedule_raw = data.get("scheduleAt")
        notification_id = data.get("notificationId")
        seen = data.get("isSeen", False)
        if not isinstance(seen, bool):
            raise TypeError("isSeen must be a boolean")

        return cls(
            id=str(data["id"]),
            notification_id=int(notification_id) if notification_id is not None else None,
            recipients=tuple(str(item) for item in recipients),
            topic=data.get("topic"),
            channel=data.get("channel"),
            title=data.get("title"),
            body=data.get("body"),
            image_url=data.get("imageUrl"),
            importance=Importance.parse(data.get("importance")),
            play_sound=data.get("playSound"),
            schedule=Schedule.from_dict(schedule_raw) if schedule_raw else None,
            targeted_user_id=data.get("targetedUserId"),
            created_at=_parse_created_at(data["createdAt"]),
            seen=seen,
            payload=dict(payload),
        )

    def to_transport_data(self) -> dict[str, str]:
        """Build the data section sent alongside the visible notification."""
        return {
            TRANSPORT_CONTENT_KEY: json.dumps(self.to_dict(), ensure_ascii=False, default=str)
        }


def decode_message(raw: Any) -> NotificationMessage:
    """Decode an inbound transport or tray payload into a message.

    Accepts a JSON document (``str``/``bytes``), a mapping carrying the
    message under ``content`` (as produced by
    :meth:`NotificationMessage.to_transport_data`), or the message mapping
    itself.

    Raises:
        DecodeError: If the payload is malformed or misses required fields.
    """
    try:
        data = _unwrap(raw)
        return NotificationMessage.from_dict(data)
    except DecodeError:
        raise
    except InvalidMessageError as exc:
        raise DecodeError(
            f"Decoded notification is invalid: {exc.message}",
            details=exc.details,
        ) from exc
    except KeyError as exc:
        raise DecodeError(
            f"Notification payload is missing required field {exc.args[0]!r}",
            details={"field": exc.args[0]},
        ) from exc
    except (TypeError, ValueError, OverflowError, OSError) as exc:
        raise DecodeError(f"Malformed notification payload: {exc}") from exc


def _unwrap(raw: Any, *, depth: int = 0) -> Mapping[str, Any]:
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8")
    if isinstance(raw, str):
        raw = json.loads(raw)
    if not isinstance(raw, Mapping):
        raise DecodeError(
            "Notification payload must be a JSON object",
            details={"type": type(raw).__name__},
        )
    if TRANSPORT_CONTENT_KEY in raw and "id" not in raw and depth == 0:
        return _unwrap(raw[TRANSPORT_CONTENT_KEY], depth=depth + 1)
    return raw


def _parse_created_at(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, bool):
        raise TypeError("createdAt must be epoch milliseconds or ISO-8601")
    if isinstance(value, (int, float)):
        return from_epoch_ms(value)
    return datetime.fromisoformat(str(value))
