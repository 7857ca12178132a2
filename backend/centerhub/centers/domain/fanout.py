"""Notification fanout: one independent record per resolved recipient."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional

from centerhub.centers.domain import paths
from centerhub.centers.domain.roles import Membership, id_set
from centerhub.centers.sockets import server as socket_server
from centerhub.infra.tree import TreeStore, get_store
from centerhub.obs import metrics as obs_metrics

_LOG = logging.getLogger(__name__)

Emitter = Callable[[str, str, dict], Awaitable[None]]


class NotificationType(str, Enum):
	NEW_ANONYMOUS_CHAT = "NEW_ANONYMOUS_CHAT"
	FINANCE_VISIBILITY_CHANGED = "FINANCE_VISIBILITY_CHANGED"
	EXPULSION = "EXPULSION"
	CENTER_DELETED = "CENTER_DELETED"
	NEW_PERMISSION = "NEW_PERMISSION"
	REMOVED_PERMISSION = "REMOVED_PERMISSION"
	ROLE_CHANGED = "ROLE_CHANGED"
	NEW_MEMBER = "NEW_MEMBER"


class PermissionType(str, Enum):
	FINANCE_MANAGER = "FINANCE_MANAGER"
	COMPETITION_MANAGER = "COMPETITION_MANAGER"
	WORKSHOP_MANAGER = "WORKSHOP_MANAGER"
	ANONYMOUS_CHAT_MODERATOR = "ANONYMOUS_CHAT_MODERATOR"


def dedupe(user_ids: Iterable[Optional[str]]) -> List[str]:
	return list(dict.fromkeys(str(user_id) for user_id in user_ids if user_id))


def all_members(membership: Membership) -> List[str]:
	return membership.member_ids()


def owner_and_delegates(membership: Membership, delegates: Any) -> List[str]:
	return dedupe([membership.owner_id, *sorted(id_set(delegates))])


def owner_and_admins_plus(membership: Membership) -> List[str]:
	return dedupe([membership.owner_id, *sorted(membership.admins_plus)])


def single(user_id: str) -> List[str]:
	return dedupe([user_id])


def now_iso() -> str:
	return datetime.now(timezone.utc).isoformat()


def build_record(
	notification_type: NotificationType,
	*,
	center_id: str,
	center_name: str,
	**extra: Any,
) -> Dict[str, Any]:
	record: Dict[str, Any] = {
		"type": notification_type.value,
		"center_id": center_id,
		"center_name": center_name,
		"created_at": now_iso(),
		"read": False,
	}
	for key, value in extra.items():
		if value is None:
			continue
		record[key] = value.value if isinstance(value, Enum) else value
	return record


@dataclass(slots=True)
class FanoutResult:
	delivered: List[str] = field(default_factory=list)
	failed: Dict[str, str] = field(default_factory=dict)

	@property
	def attempted(self) -> int:
		return len(self.delivered) + len(self.failed)


class NotificationFanout:
	"""Writes one notification per recipient; recipients succeed or fail independently."""

	def __init__(self, *, store: TreeStore | None = None, emitter: Emitter | None = None) -> None:
		self.store = store or get_store()
		self._emit = emitter or socket_server.emit_user

	async def fanout(
		self,
		recipients: Iterable[Optional[str]],
		record: Dict[str, Any],
		*,
		exclude: Iterable[str] = (),
	) -> FanoutResult:
		skipped = set(exclude)
		audience = [user_id for user_id in dedupe(recipients) if user_id not in skipped]
		outcomes = await asyncio.gather(
			*(self._deliver(user_id, record) for user_id in audience),
			return_exceptions=True,
		)
		result = FanoutResult()
		notification_type = str(record.get("type"))
		for user_id, outcome in zip(audience, outcomes):
			if isinstance(outcome, BaseException):
				result.failed[user_id] = type(outcome).__name__
				obs_metrics.fanout_recipient(notification_type, "failed")
				_LOG.warning(
					"fanout.recipient_failed",
					extra={"recipient": user_id, "type": notification_type, "error": repr(outcome)},
				)
				continue
			result.delivered.append(user_id)
			obs_metrics.fanout_recipient(notification_type, "delivered")
		return result

	async def _deliver(self, user_id: str, record: Dict[str, Any]) -> str:
		notification_id = await self.store.push(paths.notifications(user_id), record)
		try:
			await self._emit(user_id, "notification:new", {**record, "id": notification_id})
		except Exception:
			_LOG.warning("fanout.emit_failed", extra={"recipient": user_id}, exc_info=True)
		return notification_id
