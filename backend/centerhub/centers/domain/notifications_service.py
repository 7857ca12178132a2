"""Recipient-owned notification inbox."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from centerhub.centers.domain import paths
from centerhub.centers.domain.base import CenterServiceBase
from centerhub.centers.domain.exceptions import NotFoundError
from centerhub.centers.domain.sync import newest_first
from centerhub.centers.schemas import dto
from centerhub.infra.auth import AuthenticatedUser
from centerhub.infra.tree import ABORT, is_valid_key


def _inbox(value: Any, center_id: Optional[str] = None) -> List[Dict[str, Any]]:
	items = newest_first("created_at")(value)
	if center_id:
		items = [item for item in items if item.get("center_id") == center_id]
	return items


class NotificationsService(CenterServiceBase):
	async def list_notifications(
		self,
		user: AuthenticatedUser,
		*,
		center_id: Optional[str] = None,
		limit: int = 50,
	) -> dto.NotificationListResponse:
		items = _inbox(await self.store.get(paths.notifications(user.id)), center_id)
		unread = sum(1 for item in items if not item.get("read"))
		return dto.NotificationListResponse(
			items=[dto.NotificationResponse(**item) for item in items[:limit]],
			unread_count=unread,
		)

	async def unread_count(self, user: AuthenticatedUser, *, center_id: Optional[str] = None) -> dto.NotificationUnreadResponse:
		items = _inbox(await self.store.get(paths.notifications(user.id)), center_id)
		return dto.NotificationUnreadResponse(count=sum(1 for item in items if not item.get("read")))

	async def mark_read(self, user: AuthenticatedUser, notification_id: str) -> dto.NotificationMarkReadResponse:
		if not is_valid_key(notification_id):
			raise NotFoundError("notification_not_found")
		changed = False

		def apply(current: Any) -> Any:
			nonlocal changed
			if not isinstance(current, dict):
				raise NotFoundError("notification_not_found")
			changed = not current.get("read")
			if not changed:
				return ABORT
			return {**current, "read": True}

		await self.store.transaction(paths.notification(user.id, notification_id), apply)
		return dto.NotificationMarkReadResponse(updated=1 if changed else 0)

	async def mark_all_read(
		self,
		user: AuthenticatedUser,
		*,
		center_id: Optional[str] = None,
	) -> dto.NotificationMarkReadResponse:
		updated = 0

		def apply(current: Any) -> Any:
			nonlocal updated
			updated = 0
			if not isinstance(current, dict):
				return ABORT
			inbox = {}
			for key, record in current.items():
				if isinstance(record, dict) and not record.get("read") and (not center_id or record.get("center_id") == center_id):
					record = {**record, "read": True}
					updated += 1
				inbox[key] = record
			return inbox if updated else ABORT

		await self.store.transaction(paths.notifications(user.id), apply)
		return dto.NotificationMarkReadResponse(updated=updated)
