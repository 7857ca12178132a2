"""Factory helpers for centers Socket.IO namespaces."""

from __future__ import annotations

import socketio

from centerhub.centers.sockets import server as centers_server
from centerhub.centers.sockets.namespaces.live import LiveNamespace
from centerhub.centers.sockets.namespaces.user import UserNamespace


def register(server: socketio.AsyncServer) -> None:
	"""Register centers namespaces on the global Socket.IO server."""
	user_ns = UserNamespace()
	live_ns = LiveNamespace()
	server.register_namespace(user_ns)
	server.register_namespace(live_ns)
	centers_server.set_namespaces(user=user_ns)
