"""
Societies: listing, creation, detail views, updates, about cards and the
society-admin list.
"""

from __future__ import annotations

import logging
import time
from dataclasses import asdict
from typing import Iterable, Optional

from socializer.access import Actor, require_admin, require_manager
from socializer.constants import (
    ABOUT_CARD_ROLES,
    NO_ROLE,
    PORTFOLIO_ROLES,
    SOCIETIES_COLLECTION,
    USERS_COLLECTION,
)
from socializer.db import DocumentStore, WriteOp, new_document_id
from socializer.errors import ConflictError, InvalidRequestError, NotFoundError
from socializer.json_utils import snake_to_camel
from socializer.models import (
    AboutCard,
    InterviewLocation,
    SocietyRecord,
    UserRecord,
    from_document,
    to_document,
)
from socializer.notifications import (
    ADMIN_ASSIGNED,
    INTERVIEW_STATUS_CHANGED,
    notify_society,
    user_notification_op,
)
from socializer.users import get_user, require_user

logger = logging.getLogger(__name__)

_EDITABLE_FIELDS = (
    "name",
    "slogan",
    "logo",
    "description",
    "main_work",
    "instagram",
)


def _normalize(data: dict) -> dict:
    # Older documents store locations as bare names.
    locations = data.get("locations")
    if isinstance(locations, list):
        data = dict(data)
        data["locations"] = [
            {"name": loc} if isinstance(loc, str) else loc for loc in locations
        ]
    return data


def get_society(store: DocumentStore, society_id: str) -> Optional[SocietyRecord]:
    data = store.get(SOCIETIES_COLLECTION, society_id)
    if data is None:
        return None
    return from_document(SocietyRecord, society_id, _normalize(data))


def require_society(store: DocumentStore, society_id: str) -> SocietyRecord:
    society = get_society(store, society_id)
    if society is None:
        raise NotFoundError("Society not found")
    return society


def save_society(store: DocumentStore, society: SocietyRecord, *fields: str) -> None:
    """Write the named camelCase fields of `society` back, stamping updatedAt."""
    doc = to_document(society)
    society.updated_at = time.time()
    changes = {name: doc[name] for name in fields}
    changes["updatedAt"] = society.updated_at
    store.update(SOCIETIES_COLLECTION, society.id, changes)


def list_societies(store: DocumentStore, query: Optional[str] = None) -> list[SocietyRecord]:
    needle = (query or "").strip().lower()
    societies = [
        from_document(SocietyRecord, doc.id, _normalize(doc.data))
        for doc in store.list_collection(SOCIETIES_COLLECTION)
    ]
    if needle:
        societies = [s for s in societies if needle in s.name.lower()]
    societies.sort(key=lambda s: (s.name.lower(), s.id))
    return societies


def _clean_locations(is_open: bool, locations: Iterable[dict]) -> list[InterviewLocation]:
    if not is_open:
        return []
    cleaned = []
    for loc in locations:
        name = (loc.get("name") or "").strip()
        if name:
            cleaned.append(InterviewLocation(name=name, coordinates=loc.get("coordinates")))
    return cleaned


def create_society(
    store: DocumentStore,
    actor: Actor,
    *,
    name: str,
    slogan: str,
    logo: str,
    description: str,
    main_work: str,
    instagram: str = "",
    is_open_for_interviews: bool = False,
    locations: Iterable[dict] = (),
) -> SocietyRecord:
    require_admin(actor)
    if not name.strip():
        raise InvalidRequestError("Society name is required")
    now = time.time()
    society = SocietyRecord(
        id=new_document_id(),
        name=name.strip(),
        slogan=slogan,
        logo=logo,
        description=description,
        main_work=main_work,
        instagram=instagram,
        is_open_for_interviews=is_open_for_interviews,
        locations=_clean_locations(is_open_for_interviews, locations),
        created_at=now,
        updated_at=now,
    )
    store.set(SOCIETIES_COLLECTION, society.id, to_document(society))
    logger.info("Society %s created by %s", society.id, actor.uid)
    return society


def update_society(
    store: DocumentStore, actor: Actor, society_id: str, changes: dict
) -> SocietyRecord:
    """
    Apply a partial update given as snake_case field names.

    Closing interviews clears the locations; open interviews keep only
    named locations. A change of interview status is announced to members.
    """
    society = require_society(store, society_id)
    require_manager(actor, society)

    touched: list[str] = []
    for field_name in _EDITABLE_FIELDS:
        value = changes.get(field_name)
        if value is None:
            continue
        if field_name == "name":
            value = value.strip()
            if not value:
                raise InvalidRequestError("Society name is required")
        setattr(society, field_name, value)
        touched.append(field_name)

    was_open = society.is_open_for_interviews
    if changes.get("is_open_for_interviews") is not None:
        society.is_open_for_interviews = changes["is_open_for_interviews"]
        touched.append("is_open_for_interviews")
    requested = changes.get("locations")
    if requested is not None or (was_open and not society.is_open_for_interviews):
        if requested is None:
            requested = [asdict(loc) for loc in society.locations]
        society.locations = _clean_locations(society.is_open_for_interviews, requested)
        touched.append("locations")

    if touched:
        save_society(store, society, *(snake_to_camel(name) for name in touched))

    if society.is_open_for_interviews != was_open:
        status = "open" if society.is_open_for_interviews else "closed"
        notify_society(
            store,
            society.id,
            INTERVIEW_STATUS_CHANGED,
            message=f"Interviews for {society.name} are now {status}.",
        )
        logger.info("Society %s interview status changed to %s", society.id, status)
    return society


def delete_society(store: DocumentStore, actor: Actor, society_id: str) -> None:
    require_admin(actor)
    require_society(store, society_id)
    store.delete(SOCIETIES_COLLECTION, society_id)
    logger.info("Society %s deleted by %s", society_id, actor.uid)


def member_role(society: SocietyRecord, portfolio_name: str, uid: str) -> str:
    """Comma-joined roles `uid` holds in the portfolio, or "No Role"."""
    role_map = society.roles.get(portfolio_name.strip()) or {}
    held = []
    for role, holder in role_map.items():
        if holder == uid or (isinstance(holder, list) and uid in holder):
            held.append(role)
    order = {role: index for index, role in enumerate(PORTFOLIO_ROLES)}
    held.sort(key=lambda role: order.get(role, len(order)))
    return ", ".join(held) if held else NO_ROLE


def resolve_portfolios(store: DocumentStore, society: SocietyRecord) -> list[dict]:
    """Portfolios with member names and roles; members without a user document are omitted."""
    cache: dict[str, Optional[UserRecord]] = {}
    resolved = []
    for portfolio in society.portfolios:
        members = []
        for uid in portfolio.members:
            if uid not in cache:
                cache[uid] = get_user(store, uid)
            user = cache[uid]
            if user is None:
                continue
            members.append(
                {
                    "uid": uid,
                    "name": user.name,
                    "department": user.department,
                    "role": member_role(society, portfolio.name, uid),
                }
            )
        resolved.append({"name": portfolio.name, "members": members})
    return resolved


# About cards


def _check_card_role(role: str) -> None:
    if role not in ABOUT_CARD_ROLES:
        raise InvalidRequestError("Role must be one of " + ", ".join(ABOUT_CARD_ROLES))


def add_about_card(
    store: DocumentStore,
    actor: Actor,
    society_id: str,
    *,
    role: str,
    name: str,
    quote: str = "",
    logo: str = "",
) -> AboutCard:
    society = require_society(store, society_id)
    require_manager(actor, society)
    _check_card_role(role)
    card = AboutCard(id=new_document_id(), role=role, name=name, quote=quote, logo=logo)
    society.about_info.append(card)
    save_society(store, society, "aboutInfo")
    return card


def replace_about_card(
    store: DocumentStore,
    actor: Actor,
    society_id: str,
    card_id: str,
    *,
    role: str,
    name: str,
    quote: str = "",
    logo: str = "",
) -> AboutCard:
    society = require_society(store, society_id)
    require_manager(actor, society)
    _check_card_role(role)
    for index, card in enumerate(society.about_info):
        if card.id == card_id:
            replacement = AboutCard(id=card_id, role=role, name=name, quote=quote, logo=logo)
            society.about_info[index] = replacement
            save_society(store, society, "aboutInfo")
            return replacement
    raise NotFoundError("About card not found")


def delete_about_card(
    store: DocumentStore, actor: Actor, society_id: str, card_id: str
) -> None:
    society = require_society(store, society_id)
    require_manager(actor, society)
    remaining = [card for card in society.about_info if card.id != card_id]
    if len(remaining) == len(society.about_info):
        raise NotFoundError("About card not found")
    society.about_info = remaining
    save_society(store, society, "aboutInfo")


# Society admins


def list_society_admins(store: DocumentStore, society: SocietyRecord) -> list[UserRecord]:
    admins = []
    for uid in society.society_admins:
        user = get_user(store, uid)
        if user is not None:
            admins.append(user)
    return admins


def assign_society_admin(
    store: DocumentStore, actor: Actor, society_id: str, uid: str
) -> None:
    """Make `uid` an admin of the society; both admin lists change in one batch."""
    society = require_society(store, society_id)
    require_manager(actor, society)
    require_user(store, uid)
    if uid in society.society_admins:
        raise ConflictError("User is already an admin of this society.")
    store.write_batch(
        [
            WriteOp("array_union", SOCIETIES_COLLECTION, society_id, {"societyAdmins": [uid]}),
            WriteOp("array_union", USERS_COLLECTION, uid, {"societyAdmins": [society_id]}),
            user_notification_op(
                uid,
                ADMIN_ASSIGNED,
                societyId=society_id,
                assignedBy=actor.uid,
            ),
        ]
    )
    logger.info("User %s made admin of society %s by %s", uid, society_id, actor.uid)


def remove_society_admin(
    store: DocumentStore, actor: Actor, society_id: str, uid: str
) -> None:
    require_admin(actor)
    society = require_society(store, society_id)
    if uid not in society.society_admins:
        raise NotFoundError("User is not an admin of this society.")
    ops = [WriteOp("array_remove", SOCIETIES_COLLECTION, society_id, {"societyAdmins": [uid]})]
    if get_user(store, uid) is not None:
        ops.append(
            WriteOp("array_remove", USERS_COLLECTION, uid, {"societyAdmins": [society_id]})
        )
    store.write_batch(ops)
    logger.info("User %s removed as admin of society %s", uid, society_id)
