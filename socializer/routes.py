"""
HTTP routes for the society backend API.
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Query, UploadFile

from socializer import (
    broadcasts,
    events,
    friends,
    locations,
    notifications,
    portfolios,
    signup,
    societies,
    users,
)
from socializer.access import Actor
from socializer.auth import AuthClient
from socializer.config import get_settings
from socializer.db import DocumentStore
from socializer.dependencies import (
    get_auth_client,
    get_current_actor,
    get_document_store,
    get_queue_client,
    get_storage_client,
)
from socializer.models import SocietyRecord, UserRecord
from socializer.queue import JobQueue
from socializer.schemas import (
    AboutCardListResponse,
    AboutCardRequest,
    AboutCardSchema,
    AdminClaimRequest,
    AssignSocietyRequest,
    BroadcastListResponse,
    BroadcastRequest,
    BroadcastResponse,
    CheckEmailRequest,
    CheckEmailResponse,
    EventListResponse,
    EventRequest,
    EventSchema,
    FriendListResponse,
    FriendRequestCreate,
    FriendRequestPage,
    FriendRequestResponse,
    FriendResponse,
    HealthResponse,
    MarkerListResponse,
    MarkerResponse,
    NotificationListResponse,
    NotificationResponse,
    PortfolioCreateRequest,
    PortfolioListResponse,
    PortfolioMemberRequest,
    PortfolioSchema,
    PublicUserResponse,
    RoleAssignRequest,
    SendBroadcastResponse,
    SignupRequest,
    SocietyAdminListResponse,
    SocietyAdminRequest,
    SocietyCreateRequest,
    SocietyDetailResponse,
    SocietyListResponse,
    SocietySummary,
    SocietyUpdateRequest,
    StatusResponse,
    SubscriptionResponse,
    UnreadCountResponse,
    UpdateProfileRequest,
    UserListResponse,
    UserResponse,
    UserSearchResponse,
    UserSummary,
)
from socializer.storage import StorageClient
from socializer.worker import process_next

logger = logging.getLogger(__name__)

router = APIRouter()


def _picture(storage: StorageClient, user: UserRecord) -> Optional[str]:
    return users.resolve_profile_picture(
        storage, user.profile_picture, get_settings().profile_picture_url_ttl
    )


def _user_response(storage: StorageClient, user: UserRecord) -> UserResponse:
    return UserResponse(**{**asdict(user), "profile_picture": _picture(storage, user)})


def _user_summary(storage: StorageClient, user: UserRecord) -> UserSummary:
    return UserSummary(
        id=user.id,
        name=user.name,
        username=user.username,
        department=user.department,
        profile_picture=_picture(storage, user),
    )


def _society_detail(store: DocumentStore, society: SocietyRecord) -> SocietyDetailResponse:
    payload = asdict(society)
    payload["portfolios"] = societies.resolve_portfolios(store, society)
    return SocietyDetailResponse(**payload)


def _portfolio_list(store: DocumentStore, society: SocietyRecord) -> PortfolioListResponse:
    return PortfolioListResponse(
        portfolios=[
            PortfolioSchema(**item) for item in societies.resolve_portfolios(store, society)
        ]
    )


@router.get("/health", response_model=HealthResponse)
def health():
    return HealthResponse(status="ok")


# Signup


@router.post("/auth/check-email", response_model=CheckEmailResponse)
def check_email(
    payload: CheckEmailRequest, auth_client: AuthClient = Depends(get_auth_client)
):
    signup.check_email(auth_client, payload)
    return CheckEmailResponse(email=payload.email, available=True)


@router.post("/auth/signup", response_model=UserResponse, status_code=201)
def create_account(
    payload: SignupRequest,
    store: DocumentStore = Depends(get_document_store),
    auth_client: AuthClient = Depends(get_auth_client),
    storage: StorageClient = Depends(get_storage_client),
):
    user = signup.signup(store, auth_client, payload)
    return _user_response(storage, user)


# Users


@router.get("/users/me", response_model=UserResponse)
def get_me(
    actor: Actor = Depends(get_current_actor),
    storage: StorageClient = Depends(get_storage_client),
):
    return _user_response(storage, actor.user)


@router.patch("/users/me", response_model=UserResponse)
def update_me(
    payload: UpdateProfileRequest,
    actor: Actor = Depends(get_current_actor),
    store: DocumentStore = Depends(get_document_store),
    storage: StorageClient = Depends(get_storage_client),
):
    user = users.update_profile(
        store,
        actor.uid,
        name=payload.name,
        bio=payload.bio,
        phone_number=payload.phone_number,
    )
    return _user_response(storage, user)


@router.put("/users/me/profile-picture", response_model=UserResponse)
def upload_profile_picture(
    file: UploadFile = File(...),
    actor: Actor = Depends(get_current_actor),
    store: DocumentStore = Depends(get_document_store),
    storage: StorageClient = Depends(get_storage_client),
):
    data = file.file.read()
    user = users.set_profile_picture(
        store, storage, actor.user, data, file.content_type or ""
    )
    return _user_response(storage, user)


@router.delete("/users/me/profile-picture", response_model=UserResponse)
def delete_profile_picture(
    actor: Actor = Depends(get_current_actor),
    store: DocumentStore = Depends(get_document_store),
    storage: StorageClient = Depends(get_storage_client),
):
    user = users.remove_profile_picture(store, storage, actor.user)
    return _user_response(storage, user)


@router.get("/users/search", response_model=UserSearchResponse)
def search_users(
    q: str = Query(..., min_length=1),
    limit: int = Query(20, ge=1, le=100),
    actor: Actor = Depends(get_current_actor),
    store: DocumentStore = Depends(get_document_store),
    storage: StorageClient = Depends(get_storage_client),
):
    found = users.search_users(store, q, limit=limit)
    return UserSearchResponse(users=[_user_summary(storage, user) for user in found])


@router.get("/users/{uid}", response_model=PublicUserResponse)
def get_user_profile(
    uid: str,
    actor: Actor = Depends(get_current_actor),
    store: DocumentStore = Depends(get_document_store),
    storage: StorageClient = Depends(get_storage_client),
):
    user = users.require_user(store, uid)
    return PublicUserResponse(**{**asdict(user), "profile_picture": _picture(storage, user)})


@router.get("/admin/users", response_model=UserListResponse)
def admin_list_users(
    actor: Actor = Depends(get_current_actor),
    store: DocumentStore = Depends(get_document_store),
    storage: StorageClient = Depends(get_storage_client),
):
    return UserListResponse(
        users=[_user_response(storage, user) for user in users.list_users(store, actor)]
    )


@router.put("/admin/users/{uid}/assigned-society", response_model=UserResponse)
def admin_assign_society(
    uid: str,
    payload: AssignSocietyRequest,
    actor: Actor = Depends(get_current_actor),
    store: DocumentStore = Depends(get_document_store),
    storage: StorageClient = Depends(get_storage_client),
):
    user = users.assign_society(store, actor, uid, payload.society_id)
    return _user_response(storage, user)


@router.post("/admin/claims", response_model=StatusResponse)
def admin_set_claim(
    payload: AdminClaimRequest,
    actor: Actor = Depends(get_current_actor),
    store: DocumentStore = Depends(get_document_store),
    auth_client: AuthClient = Depends(get_auth_client),
):
    users.grant_admin(store, auth_client, actor, payload.uid)
    return StatusResponse()


# Societies


@router.get("/societies", response_model=SocietyListResponse)
def list_societies(
    q: Optional[str] = None,
    actor: Actor = Depends(get_current_actor),
    store: DocumentStore = Depends(get_document_store),
):
    return SocietyListResponse(
        societies=[
            SocietySummary(**asdict(society))
            for society in societies.list_societies(store, q)
        ]
    )


@router.post("/societies", response_model=SocietyDetailResponse, status_code=201)
def create_society(
    payload: SocietyCreateRequest,
    actor: Actor = Depends(get_current_actor),
    store: DocumentStore = Depends(get_document_store),
):
    data = payload.model_dump()
    society = societies.create_society(store, actor, **data)
    return _society_detail(store, society)


@router.get("/societies/{society_id}", response_model=SocietyDetailResponse)
def get_society(
    society_id: str,
    actor: Actor = Depends(get_current_actor),
    store: DocumentStore = Depends(get_document_store),
):
    return _society_detail(store, societies.require_society(store, society_id))


@router.patch("/societies/{society_id}", response_model=SocietyDetailResponse)
def update_society(
    society_id: str,
    payload: SocietyUpdateRequest,
    actor: Actor = Depends(get_current_actor),
    store: DocumentStore = Depends(get_document_store),
):
    society = societies.update_society(
        store, actor, society_id, payload.model_dump(exclude_unset=True)
    )
    return _society_detail(store, society)


@router.delete("/societies/{society_id}", response_model=StatusResponse)
def delete_society(
    society_id: str,
    actor: Actor = Depends(get_current_actor),
    store: DocumentStore = Depends(get_document_store),
):
    societies.delete_society(store, actor, society_id)
    return StatusResponse()


@router.get("/societies/{society_id}/about", response_model=AboutCardListResponse)
def list_about_cards(
    society_id: str,
    actor: Actor = Depends(get_current_actor),
    store: DocumentStore = Depends(get_document_store),
):
    society = societies.require_society(store, society_id)
    return AboutCardListResponse(
        cards=[AboutCardSchema(**asdict(card)) for card in society.about_info]
    )


@router.post(
    "/societies/{society_id}/about", response_model=AboutCardSchema, status_code=201
)
def add_about_card(
    society_id: str,
    payload: AboutCardRequest,
    actor: Actor = Depends(get_current_actor),
    store: DocumentStore = Depends(get_document_store),
):
    card = societies.add_about_card(store, actor, society_id, **payload.model_dump())
    return AboutCardSchema(**asdict(card))


@router.put("/societies/{society_id}/about/{card_id}", response_model=AboutCardSchema)
def replace_about_card(
    society_id: str,
    card_id: str,
    payload: AboutCardRequest,
    actor: Actor = Depends(get_current_actor),
    store: DocumentStore = Depends(get_document_store),
):
    card = societies.replace_about_card(
        store, actor, society_id, card_id, **payload.model_dump()
    )
    return AboutCardSchema(**asdict(card))


@router.delete("/societies/{society_id}/about/{card_id}", response_model=StatusResponse)
def delete_about_card(
    society_id: str,
    card_id: str,
    actor: Actor = Depends(get_current_actor),
    store: DocumentStore = Depends(get_document_store),
):
    societies.delete_about_card(store, actor, society_id, card_id)
    return StatusResponse()


@router.get("/societies/{society_id}/admins", response_model=SocietyAdminListResponse)
def list_society_admins(
    society_id: str,
    actor: Actor = Depends(get_current_actor),
    store: DocumentStore = Depends(get_document_store),
    storage: StorageClient = Depends(get_storage_client),
):
    society = societies.require_society(store, society_id)
    return SocietyAdminListResponse(
        admins=[
            _user_summary(storage, user)
            for user in societies.list_society_admins(store, society)
        ]
    )


@router.post("/societies/{society_id}/admins", response_model=StatusResponse)
def assign_society_admin(
    society_id: str,
    payload: SocietyAdminRequest,
    actor: Actor = Depends(get_current_actor),
    store: DocumentStore = Depends(get_document_store),
):
    societies.assign_society_admin(store, actor, society_id, payload.uid)
    return StatusResponse()


@router.delete("/societies/{society_id}/admins/{uid}", response_model=StatusResponse)
def remove_society_admin(
    society_id: str,
    uid: str,
    actor: Actor = Depends(get_current_actor),
    store: DocumentStore = Depends(get_document_store),
):
    societies.remove_society_admin(store, actor, society_id, uid)
    return StatusResponse()


# Portfolios


@router.get("/societies/{society_id}/portfolios", response_model=PortfolioListResponse)
def list_portfolios(
    society_id: str,
    actor: Actor = Depends(get_current_actor),
    store: DocumentStore = Depends(get_document_store),
):
    return _portfolio_list(store, societies.require_society(store, society_id))


@router.post(
    "/societies/{society_id}/portfolios",
    response_model=PortfolioListResponse,
    status_code=201,
)
def add_portfolio(
    society_id: str,
    payload: PortfolioCreateRequest,
    actor: Actor = Depends(get_current_actor),
    store: DocumentStore = Depends(get_document_store),
):
    portfolios.add_portfolio(store, actor, society_id, payload.name, payload.members)
    return _portfolio_list(store, societies.require_society(store, society_id))


@router.delete(
    "/societies/{society_id}/portfolios/{portfolio_name}", response_model=StatusResponse
)
def delete_portfolio(
    society_id: str,
    portfolio_name: str,
    actor: Actor = Depends(get_current_actor),
    store: DocumentStore = Depends(get_document_store),
):
    portfolios.delete_portfolio(store, actor, society_id, portfolio_name)
    return StatusResponse()


@router.post(
    "/societies/{society_id}/portfolios/{portfolio_name}/members",
    response_model=PortfolioListResponse,
)
def add_portfolio_member(
    society_id: str,
    portfolio_name: str,
    payload: PortfolioMemberRequest,
    actor: Actor = Depends(get_current_actor),
    store: DocumentStore = Depends(get_document_store),
):
    portfolios.add_portfolio_member(store, actor, society_id, portfolio_name, payload.uid)
    return _portfolio_list(store, societies.require_society(store, society_id))


@router.delete(
    "/societies/{society_id}/portfolios/{portfolio_name}/members/{uid}",
    response_model=PortfolioListResponse,
)
def remove_portfolio_member(
    society_id: str,
    portfolio_name: str,
    uid: str,
    actor: Actor = Depends(get_current_actor),
    store: DocumentStore = Depends(get_document_store),
):
    portfolios.remove_portfolio_member(store, actor, society_id, portfolio_name, uid)
    return _portfolio_list(store, societies.require_society(store, society_id))


@router.post(
    "/societies/{society_id}/portfolios/{portfolio_name}/roles",
    response_model=PortfolioListResponse,
)
def assign_role(
    society_id: str,
    portfolio_name: str,
    payload: RoleAssignRequest,
    actor: Actor = Depends(get_current_actor),
    store: DocumentStore = Depends(get_document_store),
):
    portfolios.assign_role(
        store, actor, society_id, portfolio_name, payload.uid, payload.role
    )
    return _portfolio_list(store, societies.require_society(store, society_id))


# Events


@router.get("/societies/{society_id}/events", response_model=EventListResponse)
def list_events(
    society_id: str,
    actor: Actor = Depends(get_current_actor),
    store: DocumentStore = Depends(get_document_store),
):
    return EventListResponse(
        events=[EventSchema(**asdict(event)) for event in events.list_events(store, society_id)]
    )


@router.post(
    "/societies/{society_id}/events", response_model=EventSchema, status_code=201
)
def add_event(
    society_id: str,
    payload: EventRequest,
    actor: Actor = Depends(get_current_actor),
    store: DocumentStore = Depends(get_document_store),
):
    event = events.add_event(store, actor, society_id, **payload.model_dump())
    return EventSchema(**asdict(event))


@router.put("/societies/{society_id}/events/{event_name}", response_model=EventSchema)
def update_event(
    society_id: str,
    event_name: str,
    payload: EventRequest,
    actor: Actor = Depends(get_current_actor),
    store: DocumentStore = Depends(get_document_store),
):
    event = events.update_event(
        store, actor, society_id, event_name, **payload.model_dump()
    )
    return EventSchema(**asdict(event))


@router.delete(
    "/societies/{society_id}/events/{event_name}", response_model=StatusResponse
)
def delete_event(
    society_id: str,
    event_name: str,
    actor: Actor = Depends(get_current_actor),
    store: DocumentStore = Depends(get_document_store),
):
    events.delete_event(store, actor, society_id, event_name)
    return StatusResponse()


# Broadcasts


@router.get("/societies/{society_id}/broadcasts", response_model=BroadcastListResponse)
def list_broadcasts(
    society_id: str,
    actor: Actor = Depends(get_current_actor),
    store: DocumentStore = Depends(get_document_store),
):
    return BroadcastListResponse(
        broadcasts=[
            BroadcastResponse(**asdict(item))
            for item in broadcasts.list_broadcasts(store, society_id)
        ]
    )


@router.post(
    "/societies/{society_id}/broadcasts",
    response_model=SendBroadcastResponse,
    status_code=202,
)
def send_broadcast(
    society_id: str,
    payload: BroadcastRequest,
    background_tasks: BackgroundTasks,
    actor: Actor = Depends(get_current_actor),
    store: DocumentStore = Depends(get_document_store),
    queue: JobQueue = Depends(get_queue_client),
):
    """
    Store the broadcast and enqueue its fan-out job. The worker delivers
    the notifications unless inline fan-out is enabled.
    """
    broadcast, job = broadcasts.send_broadcast(
        store, queue, actor, society_id, payload.message
    )
    if get_settings().fanout_inline:
        background_tasks.add_task(process_next, store=store, queue=queue, block=False)
    return SendBroadcastResponse(
        broadcast=BroadcastResponse(**asdict(broadcast)),
        job_id=job.id,
        status=job.status,
    )


@router.get(
    "/societies/{society_id}/broadcasts/subscription",
    response_model=SubscriptionResponse,
)
def get_subscription(
    society_id: str,
    actor: Actor = Depends(get_current_actor),
):
    return SubscriptionResponse(
        society_id=society_id, subscribed=broadcasts.is_subscribed(actor, society_id)
    )


@router.put(
    "/societies/{society_id}/broadcasts/subscription",
    response_model=SubscriptionResponse,
)
def subscribe(
    society_id: str,
    actor: Actor = Depends(get_current_actor),
    store: DocumentStore = Depends(get_document_store),
):
    broadcasts.subscribe(store, actor, society_id)
    return SubscriptionResponse(society_id=society_id, subscribed=True)


@router.delete(
    "/societies/{society_id}/broadcasts/subscription",
    response_model=SubscriptionResponse,
)
def unsubscribe(
    society_id: str,
    actor: Actor = Depends(get_current_actor),
    store: DocumentStore = Depends(get_document_store),
):
    broadcasts.unsubscribe(store, actor, society_id)
    return SubscriptionResponse(society_id=society_id, subscribed=False)


# Map


@router.get("/map/markers", response_model=MarkerListResponse)
def list_markers(
    actor: Actor = Depends(get_current_actor),
    store: DocumentStore = Depends(get_document_store),
):
    return MarkerListResponse(
        markers=[
            MarkerResponse(**asdict(marker)) for marker in locations.list_markers(store)
        ]
    )


# Friends


@router.get("/friends", response_model=FriendListResponse)
def list_friends(
    actor: Actor = Depends(get_current_actor),
    store: DocumentStore = Depends(get_document_store),
):
    return FriendListResponse(
        friends=[
            FriendResponse(uid=uid, name=name)
            for uid, name in friends.list_friends(store, actor)
        ]
    )


@router.post(
    "/friends/requests", response_model=FriendRequestResponse, status_code=201
)
def send_friend_request(
    payload: FriendRequestCreate,
    actor: Actor = Depends(get_current_actor),
    store: DocumentStore = Depends(get_document_store),
):
    request = friends.send_request(store, actor, payload.to_user_id)
    return FriendRequestResponse(**asdict(request), from_user_name=actor.user.name)


@router.get("/friends/requests", response_model=FriendRequestPage)
def list_friend_requests(
    limit: int = Query(10, ge=1, le=50),
    cursor: Optional[str] = None,
    actor: Actor = Depends(get_current_actor),
    store: DocumentStore = Depends(get_document_store),
):
    page, next_cursor = friends.list_incoming(store, actor, limit=limit, cursor=cursor)
    return FriendRequestPage(
        requests=[
            FriendRequestResponse(**asdict(request), from_user_name=name)
            for request, name in page
        ],
        next_cursor=next_cursor,
        page_size=limit,
    )


@router.post(
    "/friends/requests/{request_id}/accept", response_model=FriendRequestResponse
)
def accept_friend_request(
    request_id: str,
    actor: Actor = Depends(get_current_actor),
    store: DocumentStore = Depends(get_document_store),
):
    request = friends.accept_request(store, actor, request_id)
    return FriendRequestResponse(**asdict(request))


@router.delete("/friends/requests/{request_id}", response_model=StatusResponse)
def decline_friend_request(
    request_id: str,
    actor: Actor = Depends(get_current_actor),
    store: DocumentStore = Depends(get_document_store),
):
    friends.decline_request(store, actor, request_id)
    return StatusResponse()


# Notifications


@router.get("/notifications", response_model=NotificationListResponse)
def list_notifications(
    actor: Actor = Depends(get_current_actor),
    store: DocumentStore = Depends(get_document_store),
):
    return NotificationListResponse(
        notifications=[
            NotificationResponse(**asdict(item))
            for item in notifications.build_feed(store, actor.uid)
        ]
    )


@router.get("/notifications/unread-count", response_model=UnreadCountResponse)
def unread_notification_count(
    actor: Actor = Depends(get_current_actor),
    store: DocumentStore = Depends(get_document_store),
):
    return UnreadCountResponse(count=notifications.unread_count(store, actor.uid))


@router.post("/notifications/{notification_id}/read", response_model=StatusResponse)
def mark_notification_read(
    notification_id: str,
    actor: Actor = Depends(get_current_actor),
    store: DocumentStore = Depends(get_document_store),
):
    notifications.mark_read(store, actor.uid, notification_id)
    return StatusResponse()
