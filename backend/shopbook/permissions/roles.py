# Overview: Role variants and the single capability check used by routes and navigation.

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Union

from .categories import Action


ACTION_FLAGS = {
    Action.VIEW: "can_view",
    Action.CREATE: "can_create",
    Action.EDIT: "can_edit",
    Action.DELETE: "can_delete",
}


@dataclass(frozen=True)
class FeatureGrant:
    """One row of a worker's permission matrix."""
    can_view: bool = False
    can_create: bool = False
    can_edit: bool = False
    can_delete: bool = False

    def allows(self, action: str) -> bool:
        flag = ACTION_FLAGS.get(action)
        if flag is None:
            return False
        return bool(getattr(self, flag))

    def to_dict(self) -> dict:
        return {
            "can_view": self.can_view,
            "can_create": self.can_create,
            "can_edit": self.can_edit,
            "can_delete": self.can_delete,
        }


@dataclass(frozen=True)
class AdminRole:
    name = "admin"
    is_admin = True

    def can(self, feature: str, action: str) -> bool:
        return True


@dataclass(frozen=True)
class WorkerRole:
    grants: Mapping[str, FeatureGrant] = field(default_factory=dict)

    name = "worker"
    is_admin = False

    def can(self, feature: str, action: str) -> bool:
        # No row for the feature means every action is denied
        grant = self.grants.get(feature)
        if grant is None:
            return False
        return grant.allows(action)


Role = Union[AdminRole, WorkerRole]
