# app/services/ownership.py
"""
Visibility rules for meeting statistics.

ADMIN and MANAGER requesters may see every meeting, optionally narrowed to
one target user. A USER requester only ever sees meetings they take part
in, as booker or seller, through either the legacy columns or the
assignment tables.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

from app.core.exceptions import ForbiddenError
from app.schemas.meeting import ParticipantRole, UserRole

if TYPE_CHECKING:
    from app.services.meeting_repository import MeetingRecord

logger = structlog.get_logger(__name__)

PRIVILEGED_ROLES = frozenset({UserRole.ADMIN, UserRole.MANAGER})


@dataclass(frozen=True)
class Requester:
    """Authenticated identity on whose behalf statistics are computed."""

    id: str
    role: UserRole

    @property
    def is_privileged(self) -> bool:
        return self.role in PRIVILEGED_ROLES


@dataclass(frozen=True)
class MeetingScope:
    """
    Declarative predicate over meetings.

    - participant_ids is None: every meeting matches.
    - otherwise a meeting matches when one of the ids is a participant on
      the side given by `role` (either side when role is None).
    """

    participant_ids: frozenset[str] | None = None
    role: ParticipantRole | None = None

    @classmethod
    def unrestricted(cls) -> MeetingScope:
        return cls()

    @classmethod
    def participant(cls, user_id: str) -> MeetingScope:
        return cls(participant_ids=frozenset({user_id}))

    @classmethod
    def any_of(cls, user_ids: Iterable[str], role: ParticipantRole | None = None) -> MeetingScope:
        return cls(participant_ids=frozenset(user_ids), role=role)

    @property
    def is_unrestricted(self) -> bool:
        return self.participant_ids is None

    def matches(self, record: MeetingRecord) -> bool:
        if self.participant_ids is None:
            return True
        if self.role is ParticipantRole.BOOKER:
            ids = record.booker_ids
        elif self.role is ParticipantRole.SELLER:
            ids = record.seller_ids
        else:
            ids = record.participant_ids
        return not self.participant_ids.isdisjoint(ids)


def scope_for(
    requester_id: str,
    requester_role: UserRole | str,
    target_user_id: str | None = None,
) -> MeetingScope:
    """
    Translate (requester, role, target) into the scope of visible meetings.

    Total function: a USER always gets its own scope and any target is
    ignored here. Rejecting a foreign target is the job of
    `resolve_target_user`, called at the boundary.
    """
    if UserRole(requester_role) in PRIVILEGED_ROLES:
        if target_user_id:
            return MeetingScope.participant(target_user_id)
        return MeetingScope.unrestricted()

    return MeetingScope.participant(requester_id)


def resolve_target_user(requester: Requester, target_user_id: str | None) -> str | None:
    """
    Return the effective target user for a statistics request.

    Raises
    ------
    ForbiddenError
        If a USER requester names any user other than themselves.
    """
    if requester.is_privileged:
        return target_user_id or None

    if target_user_id and target_user_id != requester.id:
        logger.warning(
            "stats.forbidden_target",
            requester_id=requester.id,
            target_user_id=target_user_id,
        )
        raise ForbiddenError("You can only view your own statistics")

    return requester.id

