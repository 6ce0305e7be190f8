"""
bizdir.auth.models

Auth domain models.

Responsibilities:
- Define the authenticated identity type (`Principal`) injected into endpoints.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass

from bizdir.db.models import UserRole


@dataclass(frozen=True, slots=True)
class Principal:
    """
    Authenticated caller identity.
    """

    user_id: uuid.UUID
    email: str
    roles: frozenset[str]
    business_id: uuid.UUID | None = None

    @property
    def subject(self) -> str:
        return str(self.user_id)

    @property
    def is_admin(self) -> bool:
        return UserRole.admin.value in self.roles

    def can_manage(self, owner_id: uuid.UUID) -> bool:
        # Residents manage only their own tenants; admins manage every tenant.
        return self.is_admin or owner_id == self.user_id
