"""
Pydantic schemas for the society backend API.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from socializer.constants import (
    ALLOWED_EMAIL_DOMAINS,
    CAMPUSES,
    DEFAULT_FRIEND_REQUEST_PAGE_SIZE,
    DEFAULT_PRE_EVENT_NOTIFICATION_HOURS,
    DEPARTMENTS,
)

PortfolioRole = Literal["Director", "Deputy Director", "Executive"]
AboutCardRole = Literal["President", "Vice President", "Secretary", "Treasurer", "Member"]

_BATCH_RE = re.compile(r"^\d{4}$")


class StatusResponse(BaseModel):
    status: Literal["ok"] = "ok"


class HealthResponse(BaseModel):
    status: str


# Signup


class CheckEmailRequest(BaseModel):
    email: EmailStr
    name: str = Field(..., min_length=1, max_length=128)
    cms_id: str = Field(..., min_length=1, max_length=32)

    @field_validator("email")
    @classmethod
    def email_domain_allowed(cls, value: str) -> str:
        domain = value.rsplit("@", 1)[-1].lower()
        if domain not in ALLOWED_EMAIL_DOMAINS:
            raise ValueError(
                "Email domain must be one of " + ", ".join(ALLOWED_EMAIL_DOMAINS)
            )
        return value

    @field_validator("name", "cms_id")
    @classmethod
    def not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value.strip()


class CheckEmailResponse(BaseModel):
    email: str
    available: bool


class SignupRequest(CheckEmailRequest):
    username: str = Field(..., min_length=3, max_length=64)
    password: str = Field(..., min_length=6)
    retype_password: str
    is_student: bool = True
    campus: str
    phone_number: str = ""
    department: str = ""
    batch: str = ""
    occupation: str = ""
    bio: str = ""

    @field_validator("campus")
    @classmethod
    def campus_known(cls, value: str) -> str:
        if value not in CAMPUSES:
            raise ValueError("Campus must be one of " + ", ".join(CAMPUSES))
        return value

    @field_validator("phone_number")
    @classmethod
    def phone_digits(cls, value: str) -> str:
        if value and not value.isdigit():
            raise ValueError("Phone number must contain digits only")
        return value

    @model_validator(mode="after")
    def check_profile(self) -> "SignupRequest":
        if self.password != self.retype_password:
            raise ValueError("Passwords must match")
        if self.is_student:
            if self.department not in DEPARTMENTS:
                raise ValueError(
                    "Department must be one of " + ", ".join(DEPARTMENTS)
                )
            if not _BATCH_RE.match(self.batch):
                raise ValueError("Batch must be a 4 digit year")
            self.occupation = ""
            self.bio = ""
        else:
            if not self.occupation.strip():
                raise ValueError("Occupation is required")
            self.department = ""
            self.batch = ""
        return self


# Users


class UserResponse(BaseModel):
    id: str
    email: str
    name: str
    cms_id: str
    is_student: bool
    username: str
    department: str
    batch: str
    occupation: str
    bio: str
    phone_number: str
    campus: str
    profile_picture: Optional[str] = None
    is_admin: bool = False
    society_admins: list[str] = []
    friend_list: list[str] = []
    roles: dict[str, str] = {}
    broadcast_societies: list[str] = []
    assigned_society: Optional[str] = None


class PublicUserResponse(BaseModel):
    id: str
    name: str
    username: str
    department: str
    batch: str
    occupation: str
    bio: str
    campus: str
    is_student: bool
    profile_picture: Optional[str] = None


class UserSummary(BaseModel):
    id: str
    name: str
    username: str = ""
    department: str = ""
    profile_picture: Optional[str] = None


class UserListResponse(BaseModel):
    users: list[UserResponse]


class UserSearchResponse(BaseModel):
    users: list[UserSummary]


class UpdateProfileRequest(BaseModel):
    name: Optional[str] = Field(default=None, max_length=128)
    bio: Optional[str] = Field(default=None, max_length=1024)
    phone_number: Optional[str] = Field(default=None, max_length=32)


class AssignSocietyRequest(BaseModel):
    society_id: Optional[str] = None


class AdminClaimRequest(BaseModel):
    uid: str = Field(..., min_length=1)


# Societies


class InterviewLocationSchema(BaseModel):
    name: str = ""
    coordinates: Optional[list[float]] = None


class EventSchema(BaseModel):
    name: str
    date: str
    description: str = ""
    link: str = ""
    updated_by: Optional[str] = None
    updated_at: Optional[str] = None
    pre_event_notification_time: int = DEFAULT_PRE_EVENT_NOTIFICATION_HOURS


class AboutCardSchema(BaseModel):
    id: str
    role: str
    name: str
    quote: str = ""
    logo: str = ""


class PortfolioMemberSchema(BaseModel):
    uid: str
    name: str
    department: str = ""
    role: str


class PortfolioSchema(BaseModel):
    name: str
    members: list[PortfolioMemberSchema]


class SocietyCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=128)
    slogan: str = Field(..., min_length=1)
    logo: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    main_work: str = Field(..., min_length=1)
    instagram: str = ""
    is_open_for_interviews: bool = False
    locations: list[InterviewLocationSchema] = []


class SocietyUpdateRequest(BaseModel):
    name: Optional[str] = Field(default=None, max_length=128)
    slogan: Optional[str] = None
    logo: Optional[str] = None
    description: Optional[str] = None
    main_work: Optional[str] = None
    instagram: Optional[str] = None
    is_open_for_interviews: Optional[bool] = None
    locations: Optional[list[InterviewLocationSchema]] = None


class SocietySummary(BaseModel):
    id: str
    name: str
    slogan: str = ""
    logo: str = ""
    is_open_for_interviews: bool = False


class SocietyListResponse(BaseModel):
    societies: list[SocietySummary]


class SocietyDetailResponse(BaseModel):
    id: str
    name: str
    slogan: str
    logo: str
    description: str
    main_work: str
    instagram: str
    is_open_for_interviews: bool
    locations: list[InterviewLocationSchema]
    portfolios: list[PortfolioSchema]
    events: list[EventSchema]
    about_info: list[AboutCardSchema]
    society_admins: list[str]
    members: list[str]


class AboutCardRequest(BaseModel):
    role: AboutCardRole
    name: str = Field(..., min_length=1)
    quote: str = ""
    logo: str = ""


class AboutCardListResponse(BaseModel):
    cards: list[AboutCardSchema]


class SocietyAdminRequest(BaseModel):
    uid: str = Field(..., min_length=1)


class SocietyAdminListResponse(BaseModel):
    admins: list[UserSummary]


# Portfolios


class PortfolioCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=128)
    members: list[str] = []


class PortfolioListResponse(BaseModel):
    portfolios: list[PortfolioSchema]


class PortfolioMemberRequest(BaseModel):
    uid: str = Field(..., min_length=1)


class RoleAssignRequest(BaseModel):
    uid: str = Field(..., min_length=1)
    role: PortfolioRole


# Events


class EventRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=256)
    date: datetime
    description: str = Field(..., min_length=1)
    link: str = ""
    pre_event_notification_time: int = Field(
        default=DEFAULT_PRE_EVENT_NOTIFICATION_HOURS, ge=0
    )


class EventListResponse(BaseModel):
    events: list[EventSchema]


# Broadcasts


class BroadcastRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=2048)


class BroadcastResponse(BaseModel):
    id: str
    message: str
    sender: str
    created_at: Optional[float] = None


class BroadcastListResponse(BaseModel):
    broadcasts: list[BroadcastResponse]


class SendBroadcastResponse(BaseModel):
    broadcast: BroadcastResponse
    job_id: str
    status: str


class SubscriptionResponse(BaseModel):
    society_id: str
    subscribed: bool


# Map


class MarkerResponse(BaseModel):
    society_id: str
    name: str
    logo: str
    slogan: str
    description: str
    main_work: str
    is_open_for_interviews: bool
    events: list[EventSchema]
    location_name: str
    coordinates: list[float]
    color: str


class MarkerListResponse(BaseModel):
    markers: list[MarkerResponse]


# Friends


class FriendRequestCreate(BaseModel):
    to_user_id: str = Field(..., min_length=1)


class FriendRequestResponse(BaseModel):
    id: str
    from_user_id: str
    from_user_name: Optional[str] = None
    to_user_id: str
    status: str
    created_at: Optional[float] = None


class FriendRequestPage(BaseModel):
    requests: list[FriendRequestResponse]
    next_cursor: Optional[str] = None
    page_size: int = DEFAULT_FRIEND_REQUEST_PAGE_SIZE


class FriendResponse(BaseModel):
    uid: str
    name: str


class FriendListResponse(BaseModel):
    friends: list[FriendResponse]


# Notifications


class NotificationResponse(BaseModel):
    id: str
    type: str
    message: str
    timestamp: Optional[datetime] = None
    source: str
    society_id: Optional[str] = None
    society_name: Optional[str] = None
    read: bool = False


class NotificationListResponse(BaseModel):
    notifications: list[NotificationResponse]


class UnreadCountResponse(BaseModel):
    count: int
