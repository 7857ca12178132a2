"""Live snapshots of center data over Socket.IO.

Clients ``subscribe`` to one feature of one center and receive a full
``snapshot`` every time the underlying subtree changes. Every delivery
re-resolves the caller's role; when access is gone the subscription is
closed and a ``revoked`` event is sent instead.
"""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from centerhub.centers.domain import paths
from centerhub.centers.domain.anonymous_chat_service import visible_chats
from centerhub.centers.domain.competition_service import competition_response
from centerhub.centers.domain.exceptions import CenterError
from centerhub.centers.domain.finances_service import build_overview
from centerhub.centers.domain.forums_service import accessible_forums
from centerhub.centers.domain.gate import FINANCE_READER, MEMBER, GateContext, PermissionGate, Rule
from centerhub.centers.domain.posts_service import post_response
from centerhub.centers.domain.roles import resolve_role
from centerhub.centers.domain.surveys_service import survey_response
from centerhub.centers.domain.sync import LiveQuery, LiveSession, newest_first
from centerhub.centers.schemas import dto
from centerhub.centers.sockets.namespaces.base import BaseCenterNamespace
from centerhub.infra.auth import AuthenticatedUser
from centerhub.infra.tree import TreeStore, get_store, is_valid_key
from centerhub.obs import logging as obs_logging
from centerhub.obs import metrics as obs_metrics

_LOG = logging.getLogger(__name__)

Render = Callable[[Any, Optional[GateContext], str], Any]


def _dump(model: Any) -> Any:
	return model.model_dump(mode="json")


def _posts(raw: Any, context: Optional[GateContext], user_id: str) -> Any:
	items = newest_first("created_at")(raw)
	return [_dump(post_response(item, user_id)) for item in items]


def _forums(raw: Any, context: Optional[GateContext], user_id: str) -> Any:
	return [_dump(item) for item in accessible_forums(raw, context, user_id)]


def _surveys(raw: Any, context: Optional[GateContext], user_id: str) -> Any:
	return [_dump(survey_response(item, user_id)) for item in newest_first("created_at")(raw)]


def _finances(raw: Any, context: Optional[GateContext], user_id: str) -> Any:
	return _dump(build_overview(raw if isinstance(raw, dict) else {}, context))


def _competition(raw: Any, context: Optional[GateContext], user_id: str) -> Any:
	return _dump(competition_response(context, raw if isinstance(raw, dict) else {}))


def _workshops(raw: Any, context: Optional[GateContext], user_id: str) -> Any:
	return [_dump(dto.WorkshopResponse(**item)) for item in newest_first("date")(raw)]


def _chats(raw: Any, context: Optional[GateContext], user_id: str) -> Any:
	return [_dump(item) for item in visible_chats(raw, context, user_id)]


def _members(raw: Any, context: Optional[GateContext], user_id: str) -> Any:
	membership = context.membership
	return [{"user_id": member_id, "role": resolve_role(member_id, membership).value} for member_id in membership.member_ids()]


def _role(raw: Any, context: Optional[GateContext], user_id: str) -> Any:
	return {"role": context.actor.role.value}


def _notifications(raw: Any, context: Optional[GateContext], user_id: str) -> Any:
	return [_dump(dto.NotificationResponse(**item)) for item in newest_first("created_at")(raw)]


@dataclass(frozen=True)
class LiveFeature:
	name: str
	path: Callable[[Optional[str], str], str]
	render: Render
	rule: Optional[Rule] = MEMBER
	gate_feature: Optional[str] = None

	@property
	def center_scoped(self) -> bool:
		return self.rule is not None


LIVE_FEATURES: Dict[str, LiveFeature] = {
	feature.name: feature
	for feature in (
		LiveFeature("posts", lambda cid, uid: paths.feature(cid, paths.POSTS), _posts),
		LiveFeature("forums", lambda cid, uid: paths.feature(cid, paths.FORUMS), _forums, gate_feature=paths.FORUMS),
		LiveFeature(
			"surveys",
			lambda cid, uid: paths.feature(cid, paths.SURVEYS, "items"),
			_surveys,
			gate_feature=paths.SURVEYS,
		),
		LiveFeature(
			"finances",
			lambda cid, uid: paths.feature(cid, paths.FINANCES),
			_finances,
			rule=FINANCE_READER,
			gate_feature=paths.FINANCES,
		),
		LiveFeature(
			"competition",
			lambda cid, uid: paths.feature(cid, paths.COMPETITION),
			_competition,
			gate_feature=paths.COMPETITION,
		),
		LiveFeature(
			"workshops",
			lambda cid, uid: paths.feature(cid, paths.WORKSHOPS, "items"),
			_workshops,
			gate_feature=paths.WORKSHOPS,
		),
		LiveFeature(
			"anonymous_chat",
			lambda cid, uid: paths.feature(cid, paths.ANONYMOUS_CHAT, "chats"),
			_chats,
			gate_feature=paths.ANONYMOUS_CHAT,
		),
		LiveFeature("members", lambda cid, uid: paths.members(cid), _members),
		LiveFeature("role", lambda cid, uid: paths.members(cid), _role),
		LiveFeature("notifications", lambda cid, uid: paths.notifications(uid), _notifications, rule=None),
	)
}


class LiveNamespace(BaseCenterNamespace):
	"""Provides /live namespace streaming feature snapshots."""

	def __init__(self, *, store: TreeStore | None = None, gate: PermissionGate | None = None) -> None:
		super().__init__("/live")
		self._store = store
		self._gate = gate
		self._live: Dict[str, LiveSession] = {}

	@property
	def store(self) -> TreeStore:
		return self._store or get_store()

	@property
	def gate(self) -> PermissionGate:
		if self._gate is None:
			self._gate = PermissionGate(store=self.store)
		return self._gate

	async def on_connect(self, sid: str, environ: dict, auth: Optional[dict] = None) -> None:
		user = self._resolve_user(environ, auth)
		obs_metrics.socket_connected(self.namespace)
		self._sessions[sid] = user
		self._live[sid] = LiveSession()
		await self.emit("live:ready", {"user_id": user.id}, room=sid)

	async def on_disconnect(self, sid: str, *args) -> None:
		session = self._live.pop(sid, None)
		if session is not None:
			await session.close()
		if self._sessions.pop(sid, None):
			obs_metrics.socket_disconnected(self.namespace)

	async def on_subscribe(self, sid: str, payload: Optional[dict] = None) -> dict:
		user = self.get_user(sid)
		session = self._live.get(sid)
		if user is None or session is None:
			return {"ok": False, "error": "not_connected"}
		payload = payload or {}
		feature = LIVE_FEATURES.get(str(payload.get("feature", "")))
		if feature is None:
			return {"ok": False, "error": "unknown_feature"}
		center_id = payload.get("center_id")
		if feature.center_scoped and (not isinstance(center_id, str) or not is_valid_key(center_id)):
			return {"ok": False, "error": "center_id_required"}
		subscription = str(payload.get("subscription") or f"{feature.name}:{center_id or user.id}")
		try:
			await self._authorize(feature, center_id, user)
		except CenterError as exc:
			return {"ok": False, "error": exc.detail}
		await session.drop(subscription)
		query: LiveQuery[Any] = LiveQuery(
			self.store,
			feature.path(center_id, user.id),
			on_snapshot=functools.partial(self._deliver, sid, subscription, feature, center_id, user),
			name=feature.name,
		)
		session.add(subscription, query)
		await query.start()
		obs_metrics.socket_event(self.namespace, "subscribe")
		return {"ok": True, "subscription": subscription}

	async def on_unsubscribe(self, sid: str, payload: Optional[dict] = None) -> dict:
		session = self._live.get(sid)
		subscription = str((payload or {}).get("subscription", ""))
		if session is None or not subscription:
			return {"ok": False, "error": "unknown_subscription"}
		dropped = await session.drop(subscription)
		return {"ok": dropped}

	async def _authorize(
		self,
		feature: LiveFeature,
		center_id: Optional[str],
		user: AuthenticatedUser,
	) -> Optional[GateContext]:
		if not feature.center_scoped:
			return None
		return await self.gate.authorize(center_id, user.id, feature.rule, feature=feature.gate_feature)

	async def _deliver(
		self,
		sid: str,
		subscription: str,
		feature: LiveFeature,
		center_id: Optional[str],
		user: AuthenticatedUser,
		raw: Any,
	) -> None:
		with obs_logging.log_context(sid=sid, user_id=user.id, center_id=center_id):
			try:
				context = await self._authorize(feature, center_id, user)
			except CenterError as exc:
				await self._revoke(sid, subscription, feature, exc.detail)
				return
			await self._send_snapshot(sid, subscription, feature, center_id, context, user, raw)

	async def _send_snapshot(
		self,
		sid: str,
		subscription: str,
		feature: LiveFeature,
		center_id: Optional[str],
		context: Optional[GateContext],
		user: AuthenticatedUser,
		raw: Any,
	) -> None:
		payload = {
			"subscription": subscription,
			"feature": feature.name,
			"center_id": center_id,
			"items": feature.render(raw, context, user.id),
		}
		obs_metrics.socket_event(self.namespace, "snapshot")
		await self.emit("snapshot", payload, room=sid)

	async def _revoke(self, sid: str, subscription: str, feature: LiveFeature, reason: str) -> None:
		_LOG.info("live.revoked", extra={"subscription": subscription, "feature": feature.name, "reason": reason})
		obs_metrics.socket_event(self.namespace, "revoked")
		await self.emit("revoked", {"subscription": subscription, "feature": feature.name, "reason": reason}, room=sid)
		session = self._live.get(sid)
		if session is not None:
			await session.drop(subscription)

	def subscription_count(self, sid: str) -> int:
		session = self._live.get(sid)
		return len(list(session.keys())) if session is not None else 0
