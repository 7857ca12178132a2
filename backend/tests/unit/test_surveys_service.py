from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from centerhub.centers.domain import paths
from centerhub.centers.domain.exceptions import ClosedError, ForbiddenError, NotFoundError, ValidationError
from centerhub.centers.domain.surveys_service import SurveysService, tally
from centerhub.centers.schemas import dto
from centerhub.infra.auth import AuthenticatedUser


def _user(user_id: str) -> AuthenticatedUser:
	return AuthenticatedUser(id=user_id, display_name=user_id.title())


def _request(deadline: datetime) -> dto.SurveyCreateRequest:
	return dto.SurveyCreateRequest(
		question="¿Qué día hacemos la kermesse?",
		options=["Viernes", "Sábado", "Domingo"],
		deadline=deadline,
	)


@pytest.fixture()
def service(tree_store) -> SurveysService:
	return SurveysService(store=tree_store)


def test_tally_ignores_out_of_range_votes():
	assert tally(["a", "b"], {"u1": 0, "u2": 1, "u3": 1, "u4": 7, "u5": True}) == [1, 2]


@pytest.mark.asyncio
async def test_only_staff_creates_surveys(service, seed_center):
	center_id = await seed_center(admins=["ad"], students=["st"])
	deadline = datetime.now(timezone.utc) + timedelta(days=1)

	with pytest.raises(ForbiddenError):
		await service.create_survey(_user("st"), center_id, _request(deadline))
	created = await service.create_survey(_user("ad"), center_id, _request(deadline))

	assert created.total_votes == 0
	assert [option.text for option in created.options] == ["Viernes", "Sábado", "Domingo"]
	assert not created.closed


@pytest.mark.asyncio
async def test_deadline_must_be_in_the_future(service, seed_center):
	center_id = await seed_center()
	with pytest.raises(ValidationError) as exc:
		await service.create_survey(_user("owner"), center_id, _request(datetime.now(timezone.utc) - timedelta(minutes=1)))
	assert exc.value.detail == "deadline_in_past"


@pytest.mark.asyncio
async def test_last_vote_wins_and_percentages(service, seed_center):
	center_id = await seed_center(students=["s1", "s2", "s3"])
	survey = await service.create_survey(_user("owner"), center_id, _request(datetime.now(timezone.utc) + timedelta(days=1)))

	await service.vote(_user("s1"), center_id, survey.id, dto.VoteRequest(option_index=0))
	await service.vote(_user("s2"), center_id, survey.id, dto.VoteRequest(option_index=1))
	result = await service.vote(_user("s1"), center_id, survey.id, dto.VoteRequest(option_index=1))
	await service.vote(_user("s3"), center_id, survey.id, dto.VoteRequest(option_index=2))
	final = await service.get_survey(_user("s1"), center_id, survey.id)

	assert result.my_vote == 1
	assert final.total_votes == 3
	assert [option.votes for option in final.options] == [0, 2, 1]
	assert [option.percentage for option in final.options] == [0.0, 66.7, 33.3]


@pytest.mark.asyncio
async def test_concurrent_votes_are_all_counted(service, seed_center):
	voters = [f"s{index}" for index in range(8)]
	center_id = await seed_center(students=voters)
	survey = await service.create_survey(_user("owner"), center_id, _request(datetime.now(timezone.utc) + timedelta(days=1)))

	await asyncio.gather(
		*(
			service.vote(_user(voter), center_id, survey.id, dto.VoteRequest(option_index=index % 3))
			for index, voter in enumerate(voters)
		)
	)
	final = await service.get_survey(_user("owner"), center_id, survey.id)

	assert final.total_votes == 8
	assert [option.votes for option in final.options] == [3, 3, 2]


@pytest.mark.asyncio
async def test_closed_and_invalid_votes_are_rejected(service, seed_center, tree_store):
	center_id = await seed_center(students=["st"])
	survey = await service.create_survey(_user("owner"), center_id, _request(datetime.now(timezone.utc) + timedelta(days=1)))

	with pytest.raises(ValidationError):
		await service.vote(_user("st"), center_id, survey.id, dto.VoteRequest(option_index=3))

	past = (datetime.now(timezone.utc) - timedelta(seconds=1)).isoformat()
	await tree_store.set(paths.feature(center_id, paths.SURVEYS, "items", survey.id, "deadline"), past)
	with pytest.raises(ClosedError):
		await service.vote(_user("st"), center_id, survey.id, dto.VoteRequest(option_index=0))
	listing = await service.list_surveys(_user("st"), center_id)
	assert listing.items[0].closed


@pytest.mark.asyncio
async def test_delete_requires_staff(service, seed_center):
	center_id = await seed_center(students=["st"])
	survey = await service.create_survey(_user("owner"), center_id, _request(datetime.now(timezone.utc) + timedelta(days=1)))

	with pytest.raises(ForbiddenError):
		await service.delete_survey(_user("st"), center_id, survey.id)
	await service.delete_survey(_user("owner"), center_id, survey.id)

	assert (await service.list_surveys(_user("owner"), center_id)).items == []


@pytest.mark.asyncio
async def test_vote_on_a_survey_deleted_meanwhile_leaves_nothing_behind(service, seed_center, tree_store, monkeypatch):
	center_id = await seed_center(students=["st"])
	survey = await service.create_survey(_user("owner"), center_id, _request(datetime.now(timezone.utc) + timedelta(days=1)))
	load = service._load

	async def load_then_delete(center_id: str, survey_id: str):
		loaded = await load(center_id, survey_id)
		await tree_store.remove(paths.feature(center_id, paths.SURVEYS, "items", survey_id))
		return loaded

	monkeypatch.setattr(service, "_load", load_then_delete)

	with pytest.raises(NotFoundError):
		await service.vote(_user("st"), center_id, survey.id, dto.VoteRequest(option_index=0))
	assert await tree_store.get(paths.feature(center_id, paths.SURVEYS, "items", survey.id)) is None
	assert (await service.list_surveys(_user("st"), center_id)).items == []
