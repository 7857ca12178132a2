"""Lazy creation of feature subtrees with their default shape."""

from __future__ import annotations

import copy
import logging
from typing import Any, Callable, Dict, Mapping

from centerhub.centers.domain import paths
from centerhub.centers.domain.exceptions import NotFoundError
from centerhub.centers.domain.roles import Role
from centerhub.infra.tree import ABORT, TreeStore, get_store
from centerhub.obs import metrics as obs_metrics

_LOG = logging.getLogger(__name__)

DEFAULT_CATEGORIES = (
	{"id": "eventos", "name": "Eventos"},
	{"id": "materiales", "name": "Materiales y Suministros"},
	{"id": "comida_bebida", "name": "Comida y Bebida"},
	{"id": "marketing", "name": "Marketing y Difusión"},
	{"id": "transporte", "name": "Transporte"},
	{"id": "donaciones", "name": "Donaciones"},
	{"id": "cuotas", "name": "Cuotas Sociales"},
	{"id": "tienda", "name": "Tienda"},
	{"id": "varios", "name": "Varios"},
)

FALLBACK_CATEGORY_ID = "varios"

DEFAULT_FORUMS = {
	"general": {
		"name": "Foro General",
		"description": "Espacio de conversación para todos los miembros del centro.",
		"required_role": Role.STUDENT.value,
	},
	"admins": {
		"name": "Equipo Administrativo",
		"description": "Coordinación entre administradores.",
		"required_role": Role.ADMIN.value,
	},
	"admins_plus": {
		"name": "Propietario y Admins Plus",
		"description": "Decisiones reservadas al propietario y los admins plus.",
		"required_role": Role.ADMIN_PLUS.value,
	},
}


def course_names(center: Mapping[str, Any]) -> list[str]:
	courses = center.get("courses") or []
	names = []
	for course in courses:
		name = course.get("name") if isinstance(course, Mapping) else course
		if name:
			names.append(str(name))
	return list(dict.fromkeys(names))


def _finances(center: Mapping[str, Any]) -> Dict[str, Any]:
	return {
		"permissions": {"public_visibility": True, "managers": {}},
		"categories": [dict(category) for category in DEFAULT_CATEGORIES],
		"transactions": {},
	}


def _competition(center: Mapping[str, Any]) -> Dict[str, Any]:
	return {
		"scores": {name: 0 for name in course_names(center)},
		"permissions": {"admins_plus_allowed": False, "managers": {}},
		"log": {},
	}


def _workshops(center: Mapping[str, Any]) -> Dict[str, Any]:
	return {"permissions": {"managers": {}}, "items": {}}


def _surveys(center: Mapping[str, Any]) -> Dict[str, Any]:
	return {"items": {}}


def _anonymous_chat(center: Mapping[str, Any]) -> Dict[str, Any]:
	return {"permissions": {"moderators": {}}, "chats": {}, "initiators": {}}


def _forums(center: Mapping[str, Any]) -> Dict[str, Any]:
	forums = {}
	for forum_id, meta in DEFAULT_FORUMS.items():
		forums[forum_id] = {**meta, "messages": {}, "last_read": {}}
	return forums


DEFAULTS: Dict[str, Callable[[Mapping[str, Any]], Dict[str, Any]]] = {
	paths.FINANCES: _finances,
	paths.COMPETITION: _competition,
	paths.WORKSHOPS: _workshops,
	paths.SURVEYS: _surveys,
	paths.ANONYMOUS_CHAT: _anonymous_chat,
	paths.FORUMS: _forums,
}


def fill_missing(current: Any, defaults: Any) -> Any:
	"""Add default keys absent from ``current`` without touching existing values."""
	if not isinstance(current, dict) or not isinstance(defaults, dict):
		return current
	merged = dict(current)
	for key, value in defaults.items():
		if key not in merged:
			merged[key] = copy.deepcopy(value)
		else:
			merged[key] = fill_missing(merged[key], value)
	return merged


def _repair_categories(subtree: Dict[str, Any]) -> Dict[str, Any]:
	categories = subtree.get("categories")
	if not isinstance(categories, list):
		return subtree
	if any(isinstance(item, Mapping) and item.get("id") == "tienda" for item in categories):
		return subtree
	tienda = next(category for category in DEFAULT_CATEGORIES if category["id"] == "tienda")
	insert_at = len(categories)
	for index, item in enumerate(categories):
		if isinstance(item, Mapping) and item.get("id") == FALLBACK_CATEGORY_ID:
			insert_at = index
			break
	return {**subtree, "categories": [*categories[:insert_at], dict(tienda), *categories[insert_at:]]}


def build_subtree(feature: str, center: Mapping[str, Any], current: Any) -> Any:
	"""Return the initialised subtree, or ``current`` itself when nothing is missing."""
	defaults = DEFAULTS[feature](center)
	if current is None:
		return defaults
	merged = fill_missing(current, defaults)
	if feature == paths.FINANCES:
		merged = _repair_categories(merged)
	return merged


class LazyInitializer:
	"""Guarantees a feature subtree exists before it is read or written."""

	def __init__(self, *, store: TreeStore | None = None) -> None:
		self.store = store or get_store()

	async def ensure(self, center_id: str, feature: str, *, center: Mapping[str, Any] | None = None) -> Any:
		if feature not in DEFAULTS:
			raise ValueError(f"unknown feature: {feature}")
		if center is None:
			center = await self.store.get(paths.center(center_id))
		if not isinstance(center, Mapping):
			raise NotFoundError("center_not_found")
		outcome = {"result": "noop"}

		def apply(current: Any) -> Any:
			built = build_subtree(feature, center, current)
			if built == current:
				outcome["result"] = "noop"
				return ABORT
			outcome["result"] = "created" if current is None else "repaired"
			return built

		result = await self.store.transaction(paths.feature(center_id, feature), apply)
		if outcome["result"] != "noop":
			obs_metrics.initializer_write(feature, outcome["result"])
			_LOG.info(
				"initializer.subtree_written",
				extra={"center_id": center_id, "feature": feature, "result": outcome["result"]},
			)
		return result.value
