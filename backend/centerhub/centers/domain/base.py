"""Shared wiring for services that read and write center state."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, List, Sequence, Tuple

from centerhub.centers.domain import paths
from centerhub.centers.domain.exceptions import ValidationError
from centerhub.centers.domain.fanout import (
	FanoutResult,
	NotificationFanout,
	NotificationType,
	PermissionType,
	build_record,
)
from centerhub.centers.domain.gate import DELEGATION_KEYS, GateContext, PermissionGate
from centerhub.centers.domain.initializer import LazyInitializer
from centerhub.centers.domain.roles import Role, id_set
from centerhub.infra.tree import TreeStore, get_store


def parse_timestamp(value: Any) -> datetime:
	"""Stored ISO timestamps as aware datetimes; garbage sorts as the epoch."""
	if isinstance(value, datetime):
		parsed = value
	else:
		try:
			parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
		except ValueError:
			return datetime.fromtimestamp(0, tz=timezone.utc)
	if parsed.tzinfo is None:
		parsed = parsed.replace(tzinfo=timezone.utc)
	return parsed


class CenterServiceBase:
	"""Holds the store, initializer, permission gate and fanout a service needs."""

	def __init__(
		self,
		*,
		store: TreeStore | None = None,
		initializer: LazyInitializer | None = None,
		gate: PermissionGate | None = None,
		fanout: NotificationFanout | None = None,
	) -> None:
		self.store = store or get_store()
		self.initializer = initializer or LazyInitializer(store=self.store)
		self.gate = gate or PermissionGate(store=self.store, initializer=self.initializer)
		self.fanout = fanout or NotificationFanout(store=self.store)

	async def replace_delegates(
		self,
		context: GateContext,
		user_ids: Sequence[str],
		permission_type: PermissionType,
		*,
		eligible: Sequence[Role] = (Role.ADMIN, Role.ADMIN_PLUS),
	) -> Tuple[List[str], List[str], List[str]]:
		"""Overwrite a feature's delegate mapping and notify who gained or lost it.

		Returns ``(delegates, added, removed)``.
		"""
		feature = context.feature
		if feature not in DELEGATION_KEYS:
			raise ValueError(f"feature {feature!r} has no delegates")
		requested = list(dict.fromkeys(user_ids))
		for user_id in requested:
			if context.membership.tier(user_id) not in eligible:
				raise ValidationError("ineligible_delegate")
		key = DELEGATION_KEYS[feature]
		previous: set[str] = set()

		def apply(current: Any) -> Any:
			previous.clear()
			previous.update(id_set(current))
			return {user_id: True for user_id in requested}

		await self.store.transaction(paths.feature(context.center_id, feature, "permissions", key), apply)
		added = [user_id for user_id in requested if user_id not in previous]
		removed = sorted(previous - set(requested))
		await self._notify_delegation(context, added, NotificationType.NEW_PERMISSION, permission_type)
		await self._notify_delegation(context, removed, NotificationType.REMOVED_PERMISSION, permission_type)
		return requested, added, removed

	async def _notify_delegation(
		self,
		context: GateContext,
		recipients: List[str],
		notification_type: NotificationType,
		permission_type: PermissionType,
	) -> FanoutResult:
		if not recipients:
			return FanoutResult()
		record = build_record(
			notification_type,
			center_id=context.center_id,
			center_name=context.center_name,
			permission_type=permission_type,
		)
		return await self.fanout.fanout(recipients, record)
