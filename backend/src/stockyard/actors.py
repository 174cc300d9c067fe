"""Typed identity of whoever performed an operation.

Audit rows reference either a user or a service account through a pair of
optional foreign keys. The pair is resolved once at the boundary into an
Actor value and written back with actor_columns(), so no call site probes
"is this a user, else is it an account" on its own.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Union
from uuid import UUID


class ActorKind(str, Enum):
    """Kind of identity behind an actor"""
    USER = "user"
    SERVICE_ACCOUNT = "service_account"


@dataclass(frozen=True)
class UserActor:
    """A human user."""
    id: UUID

    @property
    def kind(self) -> ActorKind:
        return ActorKind.USER


@dataclass(frozen=True)
class ServiceAccountActor:
    """A service account."""
    id: UUID

    @property
    def kind(self) -> ActorKind:
        return ActorKind.SERVICE_ACCOUNT


Actor = Union[UserActor, ServiceAccountActor]


def actor_columns(actor: Actor) -> Dict[str, Optional[UUID]]:
    """Column values for the user_id/account_id pair of an audit row."""
    if isinstance(actor, UserActor):
        return {"user_id": actor.id, "account_id": None}
    if isinstance(actor, ServiceAccountActor):
        return {"user_id": None, "account_id": actor.id}
    raise TypeError(f"Unsupported actor: {actor!r}")


def actor_from_columns(user_id: Optional[UUID], account_id: Optional[UUID]) -> Optional[Actor]:
    """Rebuild the actor stored on an audit row (None if neither column is set)."""
    if user_id is not None and account_id is not None:
        raise ValueError("An audit row cannot reference both a user and an account")
    if user_id is not None:
        return UserActor(user_id)
    if account_id is not None:
        return ServiceAccountActor(account_id)
    return None
