# src/ticketing/domain/actor.py

from dataclasses import dataclass
from enum import Enum


class ActorRole(str, Enum):
    CUSTOMER = "customer"
    ORGANIZER = "organizer"
    ADMIN = "admin"


@dataclass(frozen=True)
class Actor:
    """Pre-authenticated caller. Identity and role are trusted as supplied."""

    id: str
    role: ActorRole

    @property
    def is_admin(self) -> bool:
        return self.role is ActorRole.ADMIN

    @property
    def can_manage_events(self) -> bool:
        return self.role in (ActorRole.ORGANIZER, ActorRole.ADMIN)
