"""
Identity provider abstraction for Firebase Auth and an in-memory test double.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Optional, Protocol

import firebase_admin
from firebase_admin import auth as firebase_auth
from firebase_admin import credentials

from socializer.errors import ConflictError, InvalidRequestError, NotFoundError

logger = logging.getLogger(__name__)


class InvalidTokenError(Exception):
    """Raised when a bearer token cannot be verified."""


class AuthClient(Protocol):
    """Operations the API needs from the identity provider."""

    def verify_id_token(self, token: str) -> dict:
        ...

    def create_user(self, email: str, password: str, display_name: str = "") -> str:
        ...

    def email_in_use(self, email: str) -> bool:
        ...

    def get_user_email(self, uid: str) -> str:
        ...

    def set_admin_claim(self, uid: str, is_admin: bool = True) -> None:
        ...


def get_firebase_app(
    credentials_path: Optional[str] = None, project_id: Optional[str] = None
) -> firebase_admin.App:
    """Initialize the default Firebase app once and return it."""
    try:
        return firebase_admin.get_app()
    except ValueError:
        cred = credentials.Certificate(credentials_path) if credentials_path else None
        options = {"projectId": project_id} if project_id else None
        logger.info("Initializing Firebase app (project=%s)", project_id or "default")
        return firebase_admin.initialize_app(cred, options)


@dataclass
class InMemoryAuthClient:
    """
    Test double for the identity provider.

    Tokens are registered explicitly with `issue_token`; the token string maps
    to the claims returned by `verify_id_token`.
    """

    accounts: dict = field(default_factory=dict)
    tokens: dict = field(default_factory=dict)

    def reset(self) -> None:
        self.accounts.clear()
        self.tokens.clear()

    def issue_token(self, uid: str, **claims) -> str:
        token = f"token-{uid}-{uuid.uuid4().hex[:8]}"
        account = self.accounts.get(uid, {})
        payload = {"uid": uid, "email": account.get("email")}
        payload.update(account.get("claims", {}))
        payload.update(claims)
        self.tokens[token] = payload
        return token

    def verify_id_token(self, token: str) -> dict:
        claims = self.tokens.get(token)
        if claims is None:
            raise InvalidTokenError("Unknown token")
        account = self.accounts.get(claims["uid"], {})
        return {**claims, **account.get("claims", {})}

    def create_user(self, email: str, password: str, display_name: str = "") -> str:
        if self.email_in_use(email):
            raise ConflictError("The email address is already in use by another account.")
        uid = uuid.uuid4().hex[:28]
        self.accounts[uid] = {
            "email": email.lower(),
            "password": password,
            "display_name": display_name,
            "claims": {},
        }
        return uid

    def email_in_use(self, email: str) -> bool:
        wanted = email.lower()
        return any(acc["email"] == wanted for acc in self.accounts.values())

    def get_user_email(self, uid: str) -> str:
        account = self.accounts.get(uid)
        if not account:
            raise NotFoundError(f"No auth account for {uid}")
        return account["email"]

    def set_admin_claim(self, uid: str, is_admin: bool = True) -> None:
        account = self.accounts.get(uid)
        if not account:
            raise NotFoundError(f"No auth account for {uid}")
        account["claims"]["isAdmin"] = is_admin


class FirebaseAuthClient:
    """Firebase Admin SDK implementation."""

    def __init__(self, app: Optional[firebase_admin.App] = None):
        self._app = app

    def verify_id_token(self, token: str) -> dict:
        try:
            return firebase_auth.verify_id_token(token, app=self._app)
        except (
            firebase_auth.InvalidIdTokenError,
            firebase_auth.ExpiredIdTokenError,
            firebase_auth.RevokedIdTokenError,
        ) as exc:
            raise InvalidTokenError(str(exc)) from exc

    def create_user(self, email: str, password: str, display_name: str = "") -> str:
        try:
            record = firebase_auth.create_user(
                email=email,
                password=password,
                display_name=display_name or None,
                app=self._app,
            )
        except firebase_auth.EmailAlreadyExistsError as exc:
            raise ConflictError(
                "The email address is already in use by another account."
            ) from exc
        except ValueError as exc:
            raise InvalidRequestError(str(exc)) from exc
        return record.uid

    def email_in_use(self, email: str) -> bool:
        try:
            firebase_auth.get_user_by_email(email, app=self._app)
        except firebase_auth.UserNotFoundError:
            return False
        return True

    def get_user_email(self, uid: str) -> str:
        try:
            record = firebase_auth.get_user(uid, app=self._app)
        except firebase_auth.UserNotFoundError as exc:
            raise NotFoundError(f"No auth account for {uid}") from exc
        return record.email

    def set_admin_claim(self, uid: str, is_admin: bool = True) -> None:
        try:
            record = firebase_auth.get_user(uid, app=self._app)
        except firebase_auth.UserNotFoundError as exc:
            raise NotFoundError(f"No auth account for {uid}") from exc
        claims = dict(record.custom_claims or {})
        claims["isAdmin"] = is_admin
        firebase_auth.set_custom_user_claims(uid, claims, app=self._app)
        logger.info("Custom claims set for user %s", uid)
