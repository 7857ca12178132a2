"""Server-side permission checks performed before every mutation.

Each check re-reads the center and the feature's permissions record, so the
role it evaluates is derived from the current state rather than from anything
the client held.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional

from centerhub.centers.domain import paths
from centerhub.centers.domain.exceptions import ForbiddenError, NotFoundError
from centerhub.centers.domain.initializer import LazyInitializer
from centerhub.centers.domain.roles import Actor, Membership, Role, resolve_actor
from centerhub.infra.tree import TreeStore, get_store
from centerhub.obs import metrics as obs_metrics

# Feature permission key holding the delegated user ids.
DELEGATION_KEYS = {
	paths.FINANCES: "managers",
	paths.COMPETITION: "managers",
	paths.WORKSHOPS: "managers",
	paths.ANONYMOUS_CHAT: "moderators",
}


@dataclass(frozen=True, slots=True)
class Rule:
	name: str
	check: Callable[[Actor, Mapping[str, Any]], bool]
	denial: str


MEMBER = Rule("member", lambda actor, perms: actor.is_member, "membership_required")
STAFF = Rule(
	"staff",
	lambda actor, perms: actor.role in (Role.OWNER, Role.ADMIN_PLUS, Role.ADMIN),
	"staff_role_required",
)
OWNER = Rule("owner", lambda actor, perms: actor.is_owner, "owner_role_required")
OWNER_OR_ADMIN_PLUS = Rule(
	"owner_or_admin_plus",
	lambda actor, perms: actor.role in (Role.OWNER, Role.ADMIN_PLUS),
	"admin_plus_role_required",
)
OWNER_OR_MANAGER = Rule(
	"owner_or_manager",
	lambda actor, perms: actor.is_owner or actor.delegated,
	"manager_role_required",
)
OWNER_OR_MODERATOR = Rule(
	"owner_or_moderator",
	lambda actor, perms: actor.is_owner or actor.delegated,
	"moderator_role_required",
)
SCORE_EDITOR = Rule(
	"score_editor",
	lambda actor, perms: actor.is_owner
	or actor.delegated
	or (actor.role is Role.ADMIN_PLUS and bool(perms.get("admins_plus_allowed"))),
	"score_editor_required",
)


def finance_reader(actor: Actor, perms: Mapping[str, Any]) -> bool:
	if perms.get("public_visibility", True):
		return actor.is_member
	return actor.is_owner or actor.delegated


FINANCE_READER = Rule("finance_reader", finance_reader, "finances_private")


@dataclass(slots=True)
class GateContext:
	center_id: str
	center: Dict[str, Any]
	membership: Membership
	actor: Actor
	feature: Optional[str] = None
	subtree: Dict[str, Any] = field(default_factory=dict)

	@property
	def permissions(self) -> Dict[str, Any]:
		value = self.subtree.get("permissions")
		return value if isinstance(value, dict) else {}

	@property
	def center_name(self) -> str:
		return str(self.center.get("name") or "")

	def allows(self, rule: Rule) -> bool:
		return rule.check(self.actor, self.permissions)


def require(rule: Rule, context: GateContext) -> None:
	if not context.allows(rule):
		obs_metrics.permission_denied(rule.name)
		raise ForbiddenError(rule.denial)


class PermissionGate:
	"""Resolves the caller against fresh state and enforces a feature rule."""

	def __init__(self, *, store: TreeStore | None = None, initializer: LazyInitializer | None = None) -> None:
		self.store = store or get_store()
		self.initializer = initializer or LazyInitializer(store=self.store)

	async def load(self, center_id: str, user_id: str, feature: str | None = None) -> GateContext:
		center = await self.store.get(paths.center(center_id))
		if not isinstance(center, dict):
			raise NotFoundError("center_not_found")
		membership = Membership.from_snapshot(center)
		subtree: Dict[str, Any] = {}
		delegates = None
		if feature is not None:
			value = await self.initializer.ensure(center_id, feature, center=center)
			subtree = value if isinstance(value, dict) else {}
			permissions = subtree.get("permissions")
			if isinstance(permissions, dict) and feature in DELEGATION_KEYS:
				delegates = permissions.get(DELEGATION_KEYS[feature])
		return GateContext(
			center_id=center_id,
			center=center,
			membership=membership,
			actor=resolve_actor(user_id, membership, delegates),
			feature=feature,
			subtree=subtree,
		)

	async def authorize(
		self,
		center_id: str,
		user_id: str,
		rule: Rule = MEMBER,
		*,
		feature: str | None = None,
	) -> GateContext:
		context = await self.load(center_id, user_id, feature)
		if not context.actor.is_member:
			obs_metrics.permission_denied(MEMBER.name)
			raise ForbiddenError(MEMBER.denial)
		require(rule, context)
		return context
