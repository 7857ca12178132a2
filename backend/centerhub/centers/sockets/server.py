"""Entry-point utilities for emitting via center Socket.IO namespaces."""

from __future__ import annotations

from typing import Optional

from centerhub.centers.sockets.namespaces.user import UserNamespace
from centerhub.obs import metrics as obs_metrics

_user_ns: Optional[UserNamespace] = None


def set_namespaces(*, user: UserNamespace | None) -> None:
	global _user_ns
	_user_ns = user


async def emit_user(user_id: str, event: str, payload: dict) -> None:
	"""Emit to every connection of ``user_id``; a no-op before the server is wired."""
	if _user_ns is None:
		return
	obs_metrics.socket_event(_user_ns.namespace, event)
	await _user_ns.emit(event, payload, room=UserNamespace.room_name(user_id))
