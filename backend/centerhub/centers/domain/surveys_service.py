"""Center surveys with one vote per member."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from centerhub.centers.domain import paths
from centerhub.centers.domain.base import CenterServiceBase, parse_timestamp
from centerhub.centers.domain.exceptions import ClosedError, NotFoundError, ValidationError
from centerhub.centers.domain.fanout import now_iso
from centerhub.centers.domain.gate import STAFF
from centerhub.centers.domain.sync import keyed_list
from centerhub.centers.schemas import dto
from centerhub.infra.auth import AuthenticatedUser
from centerhub.infra.tree import ABORT, is_valid_key

_LOG = logging.getLogger(__name__)


def tally(options: List[str], votes: Any) -> List[int]:
	counts = [0] * len(options)
	if isinstance(votes, dict):
		for choice in votes.values():
			if isinstance(choice, int) and not isinstance(choice, bool) and 0 <= choice < len(options):
				counts[choice] += 1
	return counts


def is_closed(survey: Dict[str, Any], now: Optional[datetime] = None) -> bool:
	now = now or datetime.now(timezone.utc)
	return parse_timestamp(survey.get("deadline")) <= now


def survey_response(survey: Dict[str, Any], user_id: str) -> dto.SurveyResponse:
	options = [str(option) for option in survey.get("options") or []]
	votes = survey.get("votes") if isinstance(survey.get("votes"), dict) else {}
	counts = tally(options, votes)
	total = sum(counts)
	mine = votes.get(user_id)
	return dto.SurveyResponse(
		id=str(survey["id"]),
		question=str(survey.get("question", "")),
		options=[
			dto.SurveyOptionResult(
				text=text,
				votes=count,
				percentage=round(count * 100.0 / total, 1) if total else 0.0,
			)
			for text, count in zip(options, counts)
		],
		deadline=parse_timestamp(survey.get("deadline")),
		created_at=parse_timestamp(survey.get("created_at")),
		author_id=str(survey.get("author_id", "")),
		author_name=str(survey.get("author_name", "")),
		total_votes=total,
		my_vote=mine if isinstance(mine, int) and not isinstance(mine, bool) else None,
		closed=is_closed(survey),
	)


class SurveysService(CenterServiceBase):
	@staticmethod
	def _items(center_id: str, *rest: str) -> str:
		return paths.feature(center_id, paths.SURVEYS, "items", *rest)

	async def _load(self, center_id: str, survey_id: str) -> Dict[str, Any]:
		if not is_valid_key(survey_id):
			raise NotFoundError("survey_not_found")
		value = await self.store.get(self._items(center_id, survey_id))
		if not isinstance(value, dict):
			raise NotFoundError("survey_not_found")
		return {**value, "id": survey_id}

	async def list_surveys(self, user: AuthenticatedUser, center_id: str) -> dto.SurveyListResponse:
		context = await self.gate.authorize(center_id, user.id, feature=paths.SURVEYS)
		items = keyed_list(
			context.subtree.get("items"),
			sort_key=lambda item: (str(item.get("created_at") or ""), item["id"]),
			reverse=True,
		)
		return dto.SurveyListResponse(items=[survey_response(item, user.id) for item in items])

	async def get_survey(self, user: AuthenticatedUser, center_id: str, survey_id: str) -> dto.SurveyResponse:
		await self.gate.authorize(center_id, user.id, feature=paths.SURVEYS)
		return survey_response(await self._load(center_id, survey_id), user.id)

	async def create_survey(
		self,
		user: AuthenticatedUser,
		center_id: str,
		payload: dto.SurveyCreateRequest,
	) -> dto.SurveyResponse:
		await self.gate.authorize(center_id, user.id, STAFF, feature=paths.SURVEYS)
		deadline = parse_timestamp(payload.deadline)
		if deadline <= datetime.now(timezone.utc):
			raise ValidationError("deadline_in_past")
		record = {
			"question": payload.question.strip(),
			"options": payload.options,
			"deadline": deadline.isoformat(),
			"created_at": now_iso(),
			"author_id": user.id,
			"author_name": user.name,
			"votes": {},
		}
		survey_id = await self.store.push(self._items(center_id), record)
		_LOG.info("surveys.created", extra={"center_id": center_id, "survey_id": survey_id})
		return survey_response({**record, "id": survey_id}, user.id)

	async def vote(
		self,
		user: AuthenticatedUser,
		center_id: str,
		survey_id: str,
		payload: dto.VoteRequest,
	) -> dto.SurveyResponse:
		await self.gate.authorize(center_id, user.id, feature=paths.SURVEYS)
		survey = await self._load(center_id, survey_id)
		if payload.option_index >= len(survey.get("options") or []):
			raise ValidationError("invalid_option")
		if is_closed(survey):
			raise ClosedError("survey_closed")

		def apply(current: Any) -> Any:
			if not isinstance(current, dict):
				return ABORT
			votes: Dict[str, Any] = dict(current.get("votes")) if isinstance(current.get("votes"), dict) else {}
			votes[user.id] = payload.option_index
			return {**current, "votes": votes}

		result = await self.store.transaction(self._items(center_id, survey_id), apply)
		if not result.committed:
			raise NotFoundError("survey_not_found")
		return survey_response({**result.value, "id": survey_id}, user.id)

	async def delete_survey(self, user: AuthenticatedUser, center_id: str, survey_id: str) -> None:
		await self.gate.authorize(center_id, user.id, STAFF, feature=paths.SURVEYS)
		await self._load(center_id, survey_id)
		await self.store.remove(self._items(center_id, survey_id))
