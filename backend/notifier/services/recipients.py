"""
Recipient resolution: a delivery target (one user, or the admins of a group) -> user ids.

An empty result is a successful no-op. Directory errors propagate as RecipientResolutionError;
unlike preferences there is no fail-open here, a request that cannot name its recipients
must not silently disappear.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from notifier.config import settings
from notifier.core.errors import InvalidTarget, RecipientResolutionError
from notifier.models.user import User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserTarget:
    user_id: str


@dataclass(frozen=True)
class GroupTarget:
    group_id: str


Target = Union[UserTarget, GroupTarget]


def make_target(user_id: str | None, group_id: str | None) -> Target:
    """Exactly one of user_id / group_id must be set."""
    user_id = (user_id or "").strip()
    group_id = (group_id or "").strip()
    if user_id and group_id:
        raise InvalidTarget("Only one of userId or groupId may be provided")
    if user_id:
        return UserTarget(user_id)
    if group_id:
        return GroupTarget(group_id)
    raise InvalidTarget("Either userId or groupId is required")


def resolve_recipients(db: Session, target: Target, roles: list[str] | None = None) -> list[str]:
    """User ids for the target. Group targets expand to members holding an elevated role."""
    if isinstance(target, UserTarget):
        return [target.user_id]

    roles = roles if roles is not None else settings.group_roles
    try:
        rows = (
            db.query(User.id)
            .filter(User.group_id == target.group_id, User.role.in_(roles))
            .order_by(User.id)
            .all()
        )
    except SQLAlchemyError as e:
        logger.error("Error fetching group admins for %s: %s", target.group_id, e)
        raise RecipientResolutionError(f"Failed to fetch group admins: {e}") from e
    user_ids = [r.id for r in rows]
    if not user_ids:
        logger.info("Group %s has no members with roles %s", target.group_id, roles)
    return user_ids
