"""
Role -> capability table.

Endpoints ask for a capability via ``require_capability`` instead of
branching on roles inline.
"""

from __future__ import annotations

from enum import Enum

from workforce.models.user import Role


class Capability(str, Enum):
    RECORD_ATTENDANCE = "attendance:record"
    VIEW_HISTORY = "attendance:history"
    VIEW_REPORTS = "attendance:reports"
    VIEW_TEAM = "attendance:team"
    MANAGE_USERS = "users:manage"


ROLE_CAPABILITIES: dict[str, frozenset[Capability]] = {
    Role.ADMIN.value: frozenset(
        {
            Capability.VIEW_HISTORY,
            Capability.VIEW_REPORTS,
            Capability.MANAGE_USERS,
        }
    ),
    Role.MANAGER.value: frozenset(
        {
            Capability.RECORD_ATTENDANCE,
            Capability.VIEW_HISTORY,
            Capability.VIEW_REPORTS,
            Capability.VIEW_TEAM,
        }
    ),
    Role.EMPLOYEE.value: frozenset(
        {
            Capability.RECORD_ATTENDANCE,
            Capability.VIEW_HISTORY,
        }
    ),
}


def has_capability(role: str, capability: Capability) -> bool:
    return capability in ROLE_CAPABILITIES.get(role, frozenset())
