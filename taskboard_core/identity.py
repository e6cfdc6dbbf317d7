"""
Identity Provider Contract
==========================

Authentication is handled by an external identity provider. This module only
describes what the API needs from it and turns the authenticated principal
into the owner key used to scope task rows.

The owner key is always the provider's stable principal id. Email and display
name can change over time and are never used as a fallback.

Author: jetgause
Created: 2025-12-11
"""

import logging
import secrets
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional

from taskboard_core.errors import ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Principal:
    """Authenticated identity as reported by the provider"""
    id: str
    email: Optional[str] = None
    name: Optional[str] = None


@dataclass
class Credential:
    email: str
    password: str


@dataclass
class OwnerSession:
    """Owner key resolved once when the session is established"""
    session_id: str
    owner_key: str
    principal: Principal
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class IdentityProvider(ABC):
    """Opaque identity/session operations the API relies on"""

    @abstractmethod
    def get_current_principal(self) -> Optional[Principal]:
        """Principal of the active session, or None when signed out"""

    @abstractmethod
    def create_session(self, credential: Credential) -> Principal:
        """Sign in; raises ValidationError on bad credentials"""

    @abstractmethod
    def delete_session(self) -> None:
        """Sign out the active session"""


def resolve_owner_key(principal: Optional[Principal]) -> str:
    """
    Canonical owner key for a principal.

    Raises:
        ValidationError: no principal, or the principal has no id
    """
    if principal is None:
        raise ValidationError("No authenticated user")
    owner_key = (principal.id or "").strip()
    if not owner_key:
        raise ValidationError("Authenticated user has no stable identifier")
    return owner_key


def establish_session(provider: IdentityProvider, credential: Credential) -> OwnerSession:
    """Sign in and pin the owner key for the rest of the session"""
    principal = provider.create_session(credential)
    session = OwnerSession(
        session_id=secrets.token_urlsafe(16),
        owner_key=resolve_owner_key(principal),
        principal=principal,
    )
    logger.info(f"Session established for owner={session.owner_key!r}")
    return session


class InMemoryIdentityProvider(IdentityProvider):
    """In-memory identity provider for development/testing."""

    def __init__(self):
        self._accounts: Dict[str, tuple] = {}
        self._current: Optional[Principal] = None

    def register(self, email: str, password: str, name: Optional[str] = None) -> Principal:
        principal = Principal(id=secrets.token_hex(10), email=email, name=name)
        self._accounts[email.lower()] = (password, principal)
        return principal

    def change_email(self, old_email: str, new_email: str) -> Principal:
        """Change a login email; the principal id stays the same"""
        password, principal = self._accounts.pop(old_email.lower())
        updated = Principal(id=principal.id, email=new_email, name=principal.name)
        self._accounts[new_email.lower()] = (password, updated)
        if self._current and self._current.id == principal.id:
            self._current = updated
        return updated

    def get_current_principal(self) -> Optional[Principal]:
        return self._current

    def create_session(self, credential: Credential) -> Principal:
        entry = self._accounts.get(credential.email.lower())
        if entry is None or not secrets.compare_digest(entry[0], credential.password):
            raise ValidationError("Invalid email or password")
        self._current = entry[1]
        return self._current

    def delete_session(self) -> None:
        self._current = None
