"""
Society events. Events live in the society document's `events` list and are
addressed by name.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from socializer.access import Actor, require_manager
from socializer.constants import DEFAULT_PRE_EVENT_NOTIFICATION_HOURS
from socializer.db import DocumentStore
from socializer.errors import ConflictError, InvalidRequestError, NotFoundError
from socializer.models import SocietyEvent
from socializer.notifications import EVENT_CREATED, EVENT_UPDATED, notify_society
from socializer.societies import require_society, save_society

logger = logging.getLogger(__name__)


def format_event_date(value: str) -> str:
    """ISO 8601 -> d/m/yyyy; unparseable values are returned unchanged."""
    try:
        parsed = datetime.fromisoformat(value)
    except (TypeError, ValueError):
        return value
    return f"{parsed.day}/{parsed.month}/{parsed.year}"


def _isoformat(value: datetime | str) -> str:
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def _validate(name: str, date: datetime | str, description: str, pre_event_hours: int) -> str:
    name = name.strip()
    if not name:
        raise InvalidRequestError("Event name is required")
    if "/" in name:
        raise InvalidRequestError('Event name cannot contain "/"')
    if not date:
        raise InvalidRequestError("Event date is required")
    if not description.strip():
        raise InvalidRequestError("Event description is required")
    if pre_event_hours < 0:
        raise InvalidRequestError("Pre-event notification time cannot be negative")
    return name


def list_events(store: DocumentStore, society_id: str) -> list[SocietyEvent]:
    return require_society(store, society_id).events


def add_event(
    store: DocumentStore,
    actor: Actor,
    society_id: str,
    *,
    name: str,
    date: datetime | str,
    description: str,
    link: str = "",
    pre_event_notification_time: int = DEFAULT_PRE_EVENT_NOTIFICATION_HOURS,
) -> SocietyEvent:
    society = require_society(store, society_id)
    require_manager(actor, society)
    name = _validate(name, date, description, pre_event_notification_time)
    if society.find_event(name) is not None:
        raise ConflictError(f'Event "{name}" already exists.')

    event = SocietyEvent(
        name=name,
        date=_isoformat(date),
        description=description,
        link=link,
        updated_by=actor.uid,
        updated_at=datetime.now(timezone.utc).isoformat(),
        pre_event_notification_time=pre_event_notification_time,
    )
    society.events.append(event)
    save_society(store, society, "events")
    notify_society(
        store,
        society.id,
        EVENT_CREATED,
        eventName=event.name,
        eventDate=format_event_date(event.date),
        senderId=actor.uid,
    )
    logger.info("Event %s added to society %s", event.name, society_id)
    return event


def update_event(
    store: DocumentStore,
    actor: Actor,
    society_id: str,
    event_name: str,
    *,
    name: str,
    date: datetime | str,
    description: str,
    link: str = "",
    pre_event_notification_time: int = DEFAULT_PRE_EVENT_NOTIFICATION_HOURS,
) -> SocietyEvent:
    society = require_society(store, society_id)
    require_manager(actor, society)
    current: Optional[SocietyEvent] = society.find_event(event_name)
    if current is None:
        raise NotFoundError("Event not found")
    name = _validate(name, date, description, pre_event_notification_time)
    if name != current.name and society.find_event(name) is not None:
        raise ConflictError(f'Event "{name}" already exists.')

    current.name = name
    current.date = _isoformat(date)
    current.description = description
    current.link = link
    current.pre_event_notification_time = pre_event_notification_time
    current.updated_by = actor.uid
    current.updated_at = datetime.now(timezone.utc).isoformat()
    save_society(store, society, "events")
    notify_society(
        store,
        society.id,
        EVENT_UPDATED,
        eventName=current.name,
        eventDate=format_event_date(current.date),
        senderId=actor.uid,
    )
    return current


def delete_event(store: DocumentStore, actor: Actor, society_id: str, event_name: str) -> None:
    society = require_society(store, society_id)
    require_manager(actor, society)
    remaining = [event for event in society.events if event.name != event_name]
    if len(remaining) == len(society.events):
        raise NotFoundError("Event not found")
    society.events = remaining
    save_society(store, society, "events")
    logger.info("Event %s deleted from society %s", event_name, society_id)
