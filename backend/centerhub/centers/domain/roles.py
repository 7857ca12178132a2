"""Role resolution for center members.

A role is never stored: it is derived from the center's owner id, its three
membership sets and, for feature-scoped checks, the feature's delegated
manager mapping. Every caller recomputes it from the snapshots it just read.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Mapping, Optional


class Role(str, Enum):
	OWNER = "owner"
	ADMIN_PLUS = "admin-plus"
	ADMIN = "admin"
	MANAGER = "manager"
	STUDENT = "student"


ROLE_HIERARCHY = {
	Role.OWNER: 5,
	Role.ADMIN_PLUS: 4,
	Role.ADMIN: 3,
	Role.MANAGER: 2,
	Role.STUDENT: 1,
}

# Membership set key for each assignable center tier.
TIER_SETS = {
	Role.ADMIN_PLUS: "admins_plus",
	Role.ADMIN: "admins",
	Role.STUDENT: "students",
}


def id_set(value: Any) -> frozenset[str]:
	"""Read a ``{user_id: true}`` mapping, tolerating absent or odd shapes."""
	if isinstance(value, Mapping):
		return frozenset(str(key) for key, flag in value.items() if flag)
	if isinstance(value, (list, tuple, set, frozenset)):
		return frozenset(str(item) for item in value if item)
	return frozenset()


@dataclass(frozen=True, slots=True)
class Membership:
	owner_id: Optional[str]
	admins_plus: frozenset[str] = frozenset()
	admins: frozenset[str] = frozenset()
	students: frozenset[str] = frozenset()

	@classmethod
	def from_snapshot(cls, center: Any) -> "Membership":
		if not isinstance(center, Mapping):
			return cls(owner_id=None)
		members = center.get("members")
		if not isinstance(members, Mapping):
			members = {}
		owner = center.get("owner_id")
		return cls(
			owner_id=str(owner) if owner else None,
			admins_plus=id_set(members.get("admins_plus")),
			admins=id_set(members.get("admins")),
			students=id_set(members.get("students")),
		)

	def member_ids(self) -> List[str]:
		"""De-duplicated union of the owner and all three sets, owner first."""
		ordered: List[str] = []
		if self.owner_id:
			ordered.append(self.owner_id)
		for group in (self.admins_plus, self.admins, self.students):
			ordered.extend(sorted(group))
		return list(dict.fromkeys(ordered))

	def is_member(self, user_id: str) -> bool:
		return (
			user_id == self.owner_id
			or user_id in self.admins_plus
			or user_id in self.admins
			or user_id in self.students
		)

	def tier(self, user_id: str) -> Optional[Role]:
		"""Center-level tier ignoring feature delegation; ``None`` for outsiders."""
		if self.owner_id is not None and user_id == self.owner_id:
			return Role.OWNER
		if user_id in self.admins_plus:
			return Role.ADMIN_PLUS
		if user_id in self.admins:
			return Role.ADMIN
		if user_id in self.students:
			return Role.STUDENT
		return None


def resolve_role(user_id: str, membership: Membership, managers: Any = None) -> Role:
	"""Exactly one label: owner > admin-plus > admin > manager > student."""
	tier = membership.tier(user_id)
	if tier in (Role.OWNER, Role.ADMIN_PLUS, Role.ADMIN):
		return tier
	if user_id in id_set(managers):
		return Role.MANAGER
	return Role.STUDENT


@dataclass(frozen=True, slots=True)
class Actor:
	user_id: str
	role: Role
	delegated: bool
	is_member: bool

	@property
	def is_owner(self) -> bool:
		return self.role is Role.OWNER

	def at_least(self, role: Role) -> bool:
		return ROLE_HIERARCHY[self.role] >= ROLE_HIERARCHY[role]


def resolve_actor(user_id: str, membership: Membership, managers: Any = None) -> Actor:
	return Actor(
		user_id=user_id,
		role=resolve_role(user_id, membership, managers),
		delegated=user_id in id_set(managers),
		is_member=membership.is_member(user_id),
	)
