from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Protocol

from fastapi import Request
from services.api.app.db.models import User
from sqlalchemy.orm import Session


@dataclass(frozen=True, slots=True)
class CurrentUser:
    id: str
    email: str | None = None


class IdentityProvider(Protocol):
    name: str

    def get_current_user(self, request: Request, db: Session) -> CurrentUser | None: ...


class HeaderIdentityProvider:
    """Trusts a user id forwarded by the upstream auth proxy.

    The proxy is responsible for verifying the session; this provider only
    checks the id refers to a known user.
    """

    name = "header"
    header = "X-User-Id"

    def get_current_user(self, request: Request, db: Session) -> CurrentUser | None:
        user_id = (request.headers.get(self.header) or "").strip()
        if not user_id:
            return None

        user = db.get(User, user_id)
        if user is None:
            return None

        return CurrentUser(id=user.id, email=user.email)


def get_identity_provider() -> IdentityProvider:
    """Select the identity provider from STOREFRONT_IDENTITY_PROVIDER."""

    provider = os.getenv("STOREFRONT_IDENTITY_PROVIDER", "header").strip().lower()

    if provider == "header":
        return HeaderIdentityProvider()

    raise ValueError(f"Unknown STOREFRONT_IDENTITY_PROVIDER={provider!r}. Expected header.")
