from __future__ import annotations

import json

import pytest

from centerhub.ai import client as ai_client
from centerhub.ai import flows, schemas
from centerhub.centers.domain.ai_service import AIService
from centerhub.centers.domain.exceptions import ForbiddenError
from centerhub.centers.schemas import dto
from centerhub.infra.auth import AuthenticatedUser


class ScriptedGenerator:
	def __init__(self, reply):
		self.reply = reply
		self.prompts: list[tuple[str, str]] = []

	async def __call__(self, system: str, user: str):
		self.prompts.append((system, user))
		if isinstance(self.reply, Exception):
			raise self.reply
		return self.reply


def _fixture_reply() -> str:
	return json.dumps(
		{
			"knockout_rounds": [
				{
					"name": "Final",
					"matches": [
						{
							"id": "m1",
							"team1": {"id": "t1", "name": "Equipo 1"},
							"team2": {"id": "t2", "name": "Equipo 2"},
							"location": "Patio",
						}
					],
				}
			]
		}
	)


@pytest.mark.asyncio
@pytest.mark.parametrize("reply", [None, "", "{not json", json.dumps({"category": 3}), RuntimeError("boom")])
async def test_categorize_uses_fallback_for_bad_output(reply):
	category = await flows.categorize_transaction("Fotocopias", ["Eventos", "Varios"], generator=ScriptedGenerator(reply))
	assert category == "Varios"


@pytest.mark.asyncio
async def test_categorize_rejects_unknown_category():
	generator = ScriptedGenerator(json.dumps({"category": "Impuestos"}))
	assert await flows.categorize_transaction("IVA", ["Eventos", "Varios"], generator=generator) == "Varios"
	assert "- Eventos" in generator.prompts[0][1]


@pytest.mark.asyncio
async def test_districts_are_sorted_and_deduplicated():
	generator = ScriptedGenerator(json.dumps({"districts": ["Rosario", " Casilda", "Rosario", ""]}))
	assert await flows.get_districts("Argentina", "Santa Fe", generator=generator) == ["Casilda", "Rosario"]
	assert await flows.get_districts("Argentina", "Santa Fe", generator=ScriptedGenerator(None)) == []


@pytest.mark.asyncio
async def test_projection_without_fallback_raises():
	payload = schemas.ProjectionInput(transactions=[], current_balance=0)
	with pytest.raises(flows.GenerationError) as exc:
		await flows.finance_projection(payload, generator=ScriptedGenerator(json.dumps({"analysis": ""})))
	assert exc.value.status_code == 503
	assert exc.value.detail == "generation_failed"


@pytest.mark.asyncio
async def test_fixture_hides_team_names_from_generator():
	generator = ScriptedGenerator(_fixture_reply())
	payload = schemas.FixtureInput(
		teams=[schemas.Team(id="t1", name="Los Pumas 5A"), schemas.Team(id="t2", name="Halcones 6B")],
		description="Eliminación directa",
		classification_type="elimination",
	)

	output = await flows.generate_fixture(payload, generator=generator)

	system, user = generator.prompts[0]
	assert "Los Pumas" not in user
	assert "Equipo 1" in user
	match = output.knockout_rounds[0].matches[0]
	assert (match.team1.name, match.team2.name) == ("Los Pumas 5A", "Halcones 6B")


@pytest.mark.asyncio
async def test_disabled_generator_raises_for_fixture():
	ai_client.set_generator(None)
	payload = schemas.FixtureInput(
		teams=[schemas.Team(id="t1", name="A"), schemas.Team(id="t2", name="B")],
		description="Liga",
		classification_type="groups",
	)
	with pytest.raises(flows.GenerationError):
		await flows.generate_fixture(payload)


@pytest.mark.asyncio
async def test_ai_service_fixture_is_staff_only(tree_store, seed_center):
	center_id = await seed_center(admins=["ad"], students=["st"])
	service = AIService(store=tree_store, generator=ScriptedGenerator(_fixture_reply()))
	request = dto.FixtureRequest(
		teams=[dto.FixtureTeam(id="t1", name="Los Pumas"), dto.FixtureTeam(id="t2", name="Halcones")],
		description="Final a partido único",
		classification_type="elimination",
	)

	with pytest.raises(ForbiddenError):
		await service.fixture(AuthenticatedUser(id="st"), center_id, request)
	output = await service.fixture(AuthenticatedUser(id="ad"), center_id, request)

	assert output.knockout_rounds[0].matches[0].team1.name == "Los Pumas"
