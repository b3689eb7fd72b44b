"""
Dataclass records for stored documents.

Documents are stored with camelCase keys; records use snake_case attributes.
`from_document`/`to_document` convert between the two with `convert_keys`
and `dacite`, filling every missing field with its fallback value.
"""

from __future__ import annotations

import time
from dataclasses import asdict, dataclass, field
from typing import Any, Optional, Type, TypeVar

from dacite import Config, from_dict

from socializer.json_utils import convert_keys

# Maps keyed by user data (portfolio names, society ids) keep their keys.
OPAQUE_FIELDS = ("roles",)

RecordT = TypeVar("RecordT")


def from_document(data_class: Type[RecordT], doc_id: str, data: Optional[dict]) -> RecordT:
    payload = convert_keys(data or {}, "camel_to_snake", opaque=OPAQUE_FIELDS)
    payload["id"] = doc_id
    return from_dict(
        data_class=data_class,
        data=payload,
        config=Config(check_types=False),
    )


def to_document(record: Any) -> dict:
    payload = asdict(record)
    payload.pop("id", None)
    return convert_keys(payload, "snake_to_camel", opaque=OPAQUE_FIELDS)


@dataclass
class UserRecord:
    id: str
    email: str = ""
    name: str = ""
    cms_id: str = ""
    is_student: bool = True
    username: str = ""
    department: str = ""
    batch: str = ""
    occupation: str = ""
    bio: str = ""
    phone_number: str = ""
    campus: str = ""
    profile_picture: Optional[str] = None
    is_admin: bool = False
    society_admins: list[str] = field(default_factory=list)
    friend_list: list[str] = field(default_factory=list)
    roles: dict[str, str] = field(default_factory=dict)
    broadcast_societies: list[str] = field(default_factory=list)
    assigned_society: Optional[str] = None
    created_at: Optional[float] = None


@dataclass
class InterviewLocation:
    name: str = ""
    coordinates: Optional[list[float]] = None


@dataclass
class Portfolio:
    name: str = ""
    members: list[str] = field(default_factory=list)


@dataclass
class SocietyEvent:
    name: str = ""
    date: str = ""
    description: str = ""
    link: str = ""
    updated_by: Optional[str] = None
    updated_at: Optional[str] = None
    pre_event_notification_time: int = 24


@dataclass
class AboutCard:
    id: str = ""
    role: str = ""
    name: str = ""
    quote: str = ""
    logo: str = ""


@dataclass
class SocietyRecord:
    id: str
    name: str = ""
    slogan: str = ""
    logo: str = ""
    description: str = ""
    main_work: str = ""
    instagram: str = ""
    is_open_for_interviews: bool = False
    locations: list[InterviewLocation] = field(default_factory=list)
    portfolios: list[Portfolio] = field(default_factory=list)
    # portfolio name -> role name -> uid (single holder) or [uid] (Executive)
    roles: dict[str, dict[str, Any]] = field(default_factory=dict)
    events: list[SocietyEvent] = field(default_factory=list)
    about_info: list[AboutCard] = field(default_factory=list)
    society_admins: list[str] = field(default_factory=list)
    members: list[str] = field(default_factory=list)
    created_at: Optional[float] = None
    updated_at: Optional[float] = None

    def find_portfolio(self, name: str) -> Optional[Portfolio]:
        wanted = name.strip()
        for portfolio in self.portfolios:
            if portfolio.name.strip() == wanted:
                return portfolio
        return None

    def find_event(self, name: str) -> Optional[SocietyEvent]:
        for event in self.events:
            if event.name == name:
                return event
        return None

    def portfolio_member_ids(self) -> list[str]:
        seen: list[str] = []
        for portfolio in self.portfolios:
            for uid in portfolio.members:
                if uid not in seen:
                    seen.append(uid)
        return seen


@dataclass
class NotificationRecord:
    id: str
    type: str = ""
    message: str = ""
    society_id: Optional[str] = None
    assigned_by: Optional[str] = None
    role: Optional[str] = None
    event_name: Optional[str] = None
    event_date: Optional[str] = None
    portfolio_name: Optional[str] = None
    sender_id: Optional[str] = None
    read: bool = False
    created_at: Optional[float] = None


@dataclass
class BroadcastRecord:
    id: str
    message: str = ""
    sender: str = ""
    created_at: Optional[float] = None


@dataclass
class FriendRequestRecord:
    id: str
    from_user_id: str = ""
    to_user_id: str = ""
    status: str = "pending"
    created_at: Optional[float] = None


class JobStatus:
    WAITING = "WAITING"
    PROCESSING = "PROCESSING"
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"


@dataclass
class FanoutJobRecord:
    id: str
    society_id: str = ""
    broadcast_id: str = ""
    sender_id: str = ""
    message: str = ""
    status: str = JobStatus.WAITING
    delivered: int = 0
    created_at: float = field(default_factory=lambda: time.time())
    updated_at: float = field(default_factory=lambda: time.time())
