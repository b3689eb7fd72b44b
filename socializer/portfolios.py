"""
Portfolios inside a society, their members and the roles members hold.

A society's `roles` map is keyed by portfolio name; each entry maps
"Director" and "Deputy Director" to a single uid and "Executive" to a list
of uids. The society's `members` list is kept equal to the union of all
portfolio members.
"""

from __future__ import annotations

import logging
from typing import Iterable

from socializer.access import Actor, require_manager
from socializer.constants import (
    PORTFOLIO_ROLES,
    ROLE_EXECUTIVE,
    SINGLE_HOLDER_ROLES,
    UNKNOWN_SOCIETY,
    USERS_COLLECTION,
)
from socializer.db import DocumentStore
from socializer.errors import ConflictError, InvalidRequestError, NotFoundError
from socializer.models import Portfolio, SocietyRecord
from socializer.notifications import (
    PORTFOLIO_MEMBER_ADDED,
    PORTFOLIO_MEMBER_REMOVED,
    ROLE_ASSIGNED,
    ROLE_ASSIGNED_BY_YOU,
    notify_user,
)
from socializer.societies import require_society, save_society
from socializer.users import display_name, get_user, require_user

logger = logging.getLogger(__name__)


def _save(store: DocumentStore, society: SocietyRecord) -> None:
    society.members = society.portfolio_member_ids()
    save_society(store, society, "portfolios", "roles", "members")


def _require_portfolio(society: SocietyRecord, name: str) -> Portfolio:
    portfolio = society.find_portfolio(name)
    if portfolio is None:
        raise NotFoundError("Portfolio not found")
    return portfolio


def _society_label(society: SocietyRecord) -> str:
    return society.name or UNKNOWN_SOCIETY


def _notify_added(store: DocumentStore, society: SocietyRecord, portfolio: str, uid: str) -> None:
    notify_user(
        store,
        uid,
        PORTFOLIO_MEMBER_ADDED,
        message=(
            f'You have been added to the portfolio "{portfolio}" in '
            f"{_society_label(society)}."
        ),
        societyId=society.id,
        portfolioName=portfolio,
    )


def held_roles(society: SocietyRecord, uid: str) -> list[str]:
    """Roles `uid` holds across every portfolio of the society, most senior first."""
    held = set()
    for role_map in society.roles.values():
        for role, holder in role_map.items():
            if holder == uid or (isinstance(holder, list) and uid in holder):
                held.add(role)
    order = {role: index for index, role in enumerate(PORTFOLIO_ROLES)}
    return sorted(held, key=lambda role: (order.get(role, len(order)), role))


def _strip_roles(society: SocietyRecord, portfolio_name: str, uid: str) -> None:
    role_map = society.roles.get(portfolio_name)
    if not role_map:
        return
    kept = {}
    for role, holder in role_map.items():
        if isinstance(holder, list):
            remaining = [member for member in holder if member != uid]
            if remaining:
                kept[role] = remaining
        elif holder != uid:
            kept[role] = holder
    if kept:
        society.roles[portfolio_name] = kept
    else:
        del society.roles[portfolio_name]


def _sync_user_role(store: DocumentStore, society: SocietyRecord, uid: str) -> None:
    # roles[societyId] on the user must name a role still held in the society.
    user = get_user(store, uid)
    if user is None:
        return
    held = held_roles(society, uid)
    current = user.roles.get(society.id)
    if current in held or (current is None and not held):
        return
    roles = dict(user.roles)
    if held:
        roles[society.id] = held[0]
    else:
        del roles[society.id]
    store.update(USERS_COLLECTION, uid, {"roles": roles})


def add_portfolio(
    store: DocumentStore,
    actor: Actor,
    society_id: str,
    name: str,
    member_ids: Iterable[str] = (),
) -> Portfolio:
    society = require_society(store, society_id)
    require_manager(actor, society)
    name = name.strip()
    if not name:
        raise InvalidRequestError("Portfolio name is required")
    if "/" in name:
        raise InvalidRequestError('Portfolio name cannot contain "/"')
    if society.find_portfolio(name) is not None:
        raise ConflictError(f'Portfolio "{name}" already exists.')

    members = list(dict.fromkeys(member_ids))
    for uid in members:
        require_user(store, uid)

    portfolio = Portfolio(name=name, members=members)
    society.portfolios.append(portfolio)
    _save(store, society)
    for uid in members:
        _notify_added(store, society, name, uid)
    logger.info("Portfolio %s added to society %s", name, society_id)
    return portfolio


def add_portfolio_member(
    store: DocumentStore, actor: Actor, society_id: str, portfolio_name: str, uid: str
) -> Portfolio:
    society = require_society(store, society_id)
    require_manager(actor, society)
    portfolio = _require_portfolio(society, portfolio_name)
    require_user(store, uid)
    if uid in portfolio.members:
        raise ConflictError("User is already a member of this portfolio.")
    portfolio.members.append(uid)
    _save(store, society)
    _notify_added(store, society, portfolio.name, uid)
    return portfolio


def remove_portfolio_member(
    store: DocumentStore, actor: Actor, society_id: str, portfolio_name: str, uid: str
) -> Portfolio:
    society = require_society(store, society_id)
    require_manager(actor, society)
    portfolio = _require_portfolio(society, portfolio_name)
    if uid not in portfolio.members:
        raise NotFoundError("User is not a member of this portfolio.")
    portfolio.members = [member for member in portfolio.members if member != uid]
    _strip_roles(society, portfolio.name, uid)
    _save(store, society)
    _sync_user_role(store, society, uid)
    notify_user(
        store,
        uid,
        PORTFOLIO_MEMBER_REMOVED,
        message=(
            f'You have been removed from the portfolio "{portfolio.name}" in '
            f"{_society_label(society)}."
        ),
        societyId=society.id,
        portfolioName=portfolio.name,
    )
    return portfolio


def delete_portfolio(
    store: DocumentStore, actor: Actor, society_id: str, portfolio_name: str
) -> None:
    society = require_society(store, society_id)
    require_manager(actor, society)
    portfolio = _require_portfolio(society, portfolio_name)
    society.portfolios = [p for p in society.portfolios if p is not portfolio]
    society.roles.pop(portfolio.name, None)
    _save(store, society)
    for uid in portfolio.members:
        _sync_user_role(store, society, uid)
    logger.info("Portfolio %s deleted from society %s", portfolio.name, society_id)


def assign_role(
    store: DocumentStore,
    actor: Actor,
    society_id: str,
    portfolio_name: str,
    uid: str,
    role: str,
) -> dict:
    """
    Give `uid` a role in the portfolio.

    Director and Deputy Director have one holder each; Executive collects
    any number of members. The assignee and the assigner both get a
    notification.
    """
    if role not in PORTFOLIO_ROLES:
        raise InvalidRequestError("Role must be one of " + ", ".join(PORTFOLIO_ROLES))
    society = require_society(store, society_id)
    require_manager(actor, society)
    portfolio = _require_portfolio(society, portfolio_name)
    user = require_user(store, uid)
    if uid not in portfolio.members:
        raise InvalidRequestError("User must be a member of the portfolio.")

    role_map = dict(society.roles.get(portfolio.name) or {})
    if role in SINGLE_HOLDER_ROLES:
        holder = role_map.get(role)
        if holder and holder != uid:
            raise ConflictError(
                f"The role of {role} is already assigned in {portfolio.name}."
            )
        role_map[role] = uid
    else:
        executives = list(role_map.get(ROLE_EXECUTIVE) or [])
        if uid not in executives:
            executives.append(uid)
        role_map[ROLE_EXECUTIVE] = executives
    society.roles[portfolio.name] = role_map
    _save(store, society)

    roles = dict(user.roles)
    roles[society.id] = role
    store.update(USERS_COLLECTION, uid, {"roles": roles})

    notify_user(
        store,
        uid,
        ROLE_ASSIGNED,
        societyId=society.id,
        assignedBy=actor.uid,
        role=role,
        portfolioName=portfolio.name,
    )
    notify_user(
        store,
        actor.uid,
        ROLE_ASSIGNED_BY_YOU,
        message=(
            f"You assigned the role of {role} to {display_name(store, uid)} "
            f"in {_society_label(society)}."
        ),
        societyId=society.id,
        role=role,
        portfolioName=portfolio.name,
    )
    logger.info(
        "Role %s in %s/%s assigned to %s by %s",
        role,
        society_id,
        portfolio.name,
        uid,
        actor.uid,
    )
    return role_map
