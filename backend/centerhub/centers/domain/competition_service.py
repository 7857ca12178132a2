"""Inter-course competition scores and their audit log."""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from centerhub.centers.domain import paths
from centerhub.centers.domain.base import CenterServiceBase
from centerhub.centers.domain.exceptions import ValidationError
from centerhub.centers.domain.fanout import PermissionType, now_iso
from centerhub.centers.domain.gate import MEMBER, OWNER, SCORE_EDITOR, GateContext
from centerhub.centers.domain.roles import Role, id_set
from centerhub.centers.domain.sync import entries_in_order, newest_first
from centerhub.centers.schemas import dto
from centerhub.infra.auth import AuthenticatedUser

_LOG = logging.getLogger(__name__)


def apply_score_changes(
	current: Any,
	changes: List[Dict[str, Any]],
	log_id: str,
	entry: Dict[str, Any],
) -> Dict[str, Any]:
	"""Add every delta to its course and append the log entry in one step."""
	subtree = dict(current) if isinstance(current, dict) else {}
	scores = dict(subtree.get("scores") or {})
	for change in changes:
		if change["course"] not in scores:
			raise ValidationError("unknown_course")
		scores[change["course"]] = int(scores[change["course"]] or 0) + change["points"]
	log = dict(subtree.get("log") or {})
	log[log_id] = entry
	subtree["scores"] = scores
	subtree["log"] = log
	return subtree


def competition_response(context: GateContext, subtree: Dict[str, Any]) -> dto.CompetitionResponse:
	permissions = subtree.get("permissions") if isinstance(subtree.get("permissions"), dict) else {}
	log = newest_first("timestamp")(subtree.get("log"))
	return dto.CompetitionResponse(
		scores=[
			dto.ScoreEntry(course=item["name"], points=int(item["value"] or 0))
			for item in entries_in_order(subtree.get("scores"))
		],
		log=[
			dto.ScoreLogEntry(
				id=item["id"],
				timestamp=item.get("timestamp"),
				reason=str(item.get("reason", "")),
				editor_id=str(item.get("editor_id", "")),
				editor_name=str(item.get("editor_name", "")),
				changes=[dto.ScoreChange(**change) for change in item.get("changes") or []],
			)
			for item in log
		],
		admins_plus_allowed=bool(permissions.get("admins_plus_allowed")),
		managers=sorted(id_set(permissions.get("managers"))),
		can_edit=SCORE_EDITOR.check(context.actor, permissions),
	)


class CompetitionService(CenterServiceBase):
	async def get_competition(self, user: AuthenticatedUser, center_id: str) -> dto.CompetitionResponse:
		context = await self.gate.authorize(center_id, user.id, MEMBER, feature=paths.COMPETITION)
		return competition_response(context, context.subtree)

	async def update_scores(
		self,
		user: AuthenticatedUser,
		center_id: str,
		payload: dto.ScoreUpdateRequest,
	) -> dto.CompetitionResponse:
		context = await self.gate.authorize(center_id, user.id, SCORE_EDITOR, feature=paths.COMPETITION)
		merged: Dict[str, int] = {}
		for change in payload.changes:
			merged[change.course] = merged.get(change.course, 0) + change.points
		changes = [{"course": course, "points": points} for course, points in merged.items() if points != 0]
		if not changes:
			raise ValidationError("no_score_changes")
		known = context.subtree.get("scores") if isinstance(context.subtree.get("scores"), dict) else {}
		if any(change["course"] not in known for change in changes):
			raise ValidationError("unknown_course")
		log_id = self.store.push_key()
		entry = {
			"timestamp": now_iso(),
			"reason": payload.reason.strip(),
			"editor_id": user.id,
			"editor_name": user.name,
			"changes": changes,
		}
		result = await self.store.transaction(
			paths.feature(center_id, paths.COMPETITION),
			lambda current: apply_score_changes(current, changes, log_id, entry),
		)
		_LOG.info("competition.scores_updated", extra={"center_id": center_id, "log_id": log_id})
		return competition_response(context, result.value or {})

	async def set_permissions(
		self,
		user: AuthenticatedUser,
		center_id: str,
		payload: dto.CompetitionPermissionsRequest,
	) -> dto.CompetitionResponse:
		context = await self.gate.authorize(center_id, user.id, OWNER, feature=paths.COMPETITION)
		requested = list(payload.managers)
		if not payload.admins_plus_allowed:
			requested = [uid for uid in requested if context.membership.tier(uid) is not Role.ADMIN_PLUS]
		await self.store.set(
			paths.feature(center_id, paths.COMPETITION, "permissions", "admins_plus_allowed"),
			payload.admins_plus_allowed,
		)
		await self.replace_delegates(context, requested, PermissionType.COMPETITION_MANAGER)
		refreshed = await self.gate.load(center_id, user.id, paths.COMPETITION)
		return competition_response(refreshed, refreshed.subtree)
