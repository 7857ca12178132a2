"""Personal namespace: one room per user for notification delivery."""

from __future__ import annotations

from typing import Any, Optional

from centerhub.centers.domain import paths
from centerhub.centers.sockets.namespaces.base import BaseCenterNamespace
from centerhub.infra.tree import TreeStore, get_store
from centerhub.obs import metrics as obs_metrics


def unread_total(inbox: Any) -> int:
	if not isinstance(inbox, dict):
		return 0
	return sum(1 for record in inbox.values() if isinstance(record, dict) and not record.get("read"))


class UserNamespace(BaseCenterNamespace):
	"""Joins each client to ``user:{id}`` and reports the unread badge on connect."""

	def __init__(self, *, store: TreeStore | None = None) -> None:
		super().__init__("/user")
		self._store = store

	@property
	def store(self) -> TreeStore:
		return self._store or get_store()

	async def on_connect(self, sid: str, environ: dict, auth: Optional[dict] = None) -> None:
		user = self._resolve_user(environ, auth)
		self._sessions[sid] = user
		obs_metrics.socket_connected(self.namespace)
		await self.enter_room(sid, self.room_name(user.id))
		unread = unread_total(await self.store.get(paths.notifications(user.id)))
		await self.emit("user:ready", {"user_id": user.id, "unread": unread}, room=sid)

	async def on_disconnect(self, sid: str, *args) -> None:
		user = self._sessions.pop(sid, None)
		if user is None:
			return
		obs_metrics.socket_disconnected(self.namespace)
		await self.leave_room(sid, self.room_name(user.id))

	@staticmethod
	def room_name(user_id: str) -> str:
		return f"user:{user_id}"
