"""Text-generation flows with a single failure policy.

Every flow renders a prompt, asks the generator for a JSON object and
validates it. When the output is empty or invalid, or the generator fails,
a flow with a declared fallback returns it; any other flow raises
``GenerationError``.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from typing import Callable, Generic, List, Optional, Sequence, Type, TypeVar

from pydantic import BaseModel, ValidationError

from centerhub.ai import prompts, schemas
from centerhub.ai.client import Generator, get_generator
from centerhub.obs import metrics as obs_metrics

_LOG = logging.getLogger(__name__)

InT = TypeVar("InT", bound=BaseModel)
OutT = TypeVar("OutT", bound=BaseModel)

FALLBACK_CATEGORY = "Varios"


class GenerationError(Exception):
	"""A flow without a fallback produced no usable output."""

	status_code = 503
	detail = "generation_failed"

	def __init__(self, flow: str) -> None:
		super().__init__(f"{flow}: {self.detail}")
		self.flow = flow


@dataclass(frozen=True)
class Flow(Generic[InT, OutT]):
	name: str
	render: Callable[[InT], prompts.Messages]
	output: Type[OutT]
	fallback: Optional[Callable[[InT], OutT]] = None
	finish: Optional[Callable[[InT, OutT], OutT]] = None


async def run_flow(flow: Flow[InT, OutT], payload: InT, *, generator: Generator | None = None) -> OutT:
	generate = generator or get_generator()
	system, user = flow.render(payload)
	started = time.perf_counter()
	reason = "ok"
	result: Optional[OutT] = None
	try:
		raw = await generate(system, user)
		if not raw:
			reason = "empty"
		else:
			result = flow.output.model_validate(json.loads(raw))
	except (json.JSONDecodeError, ValidationError, TypeError) as exc:
		reason = "invalid"
		_LOG.warning("ai.invalid_output", extra={"flow": flow.name, "error": str(exc)})
	except Exception as exc:
		reason = "error"
		_LOG.warning("ai.generator_failed", extra={"flow": flow.name, "error": repr(exc)})
	elapsed = time.perf_counter() - started
	if result is not None:
		if flow.finish is not None:
			result = flow.finish(payload, result)
		obs_metrics.ai_generation(flow.name, "ok", latency_seconds=elapsed)
		return result
	if flow.fallback is not None:
		obs_metrics.ai_generation(flow.name, "fallback", latency_seconds=elapsed)
		_LOG.info("ai.fallback_used", extra={"flow": flow.name, "reason": reason})
		return flow.fallback(payload)
	obs_metrics.ai_generation(flow.name, "failed", latency_seconds=elapsed)
	raise GenerationError(flow.name)


# --- categorize ------------------------------------------------------------

def _constrain_category(payload: schemas.CategorizeInput, output: schemas.CategorizeOutput) -> schemas.CategorizeOutput:
	wanted = output.category.strip().casefold()
	for name in payload.categories:
		if name.casefold() == wanted:
			return schemas.CategorizeOutput(category=name)
	return schemas.CategorizeOutput(category=FALLBACK_CATEGORY)


CATEGORIZE = Flow(
	name="categorize",
	render=prompts.categorize,
	output=schemas.CategorizeOutput,
	fallback=lambda payload: schemas.CategorizeOutput(category=FALLBACK_CATEGORY),
	finish=_constrain_category,
)


# --- districts -------------------------------------------------------------

def _sorted_districts(payload: schemas.DistrictsInput, output: schemas.DistrictsOutput) -> schemas.DistrictsOutput:
	names = {name.strip() for name in output.districts if name and name.strip()}
	return schemas.DistrictsOutput(districts=sorted(names))


DISTRICTS = Flow(
	name="districts",
	render=prompts.districts,
	output=schemas.DistrictsOutput,
	fallback=lambda payload: schemas.DistrictsOutput(districts=[]),
	finish=_sorted_districts,
)


# --- fixture ---------------------------------------------------------------

def anonymise_teams(teams: Sequence[schemas.Team]) -> List[schemas.Team]:
	"""Replace team names with ``Equipo N`` keeping the ids."""
	return [schemas.Team(id=team.id, name=f"Equipo {index}") for index, team in enumerate(teams, start=1)]


def restore_team_names(output: schemas.FixtureOutput, teams: Sequence[schemas.Team]) -> schemas.FixtureOutput:
	names = {team.id: team.name for team in teams}
	restored = output.model_copy(deep=True)

	def fix(team: Optional[schemas.Team]) -> None:
		if team is not None and team.id in names:
			team.name = names[team.id]

	for group in restored.groups or []:
		for team in group.teams:
			fix(team)
		for match in group.matches:
			fix(match.team1)
			fix(match.team2)
	for round_ in restored.knockout_rounds:
		for match in round_.matches:
			fix(match.team1)
			fix(match.team2)
	return restored


FIXTURE = Flow(
	name="fixture",
	render=prompts.fixture,
	output=schemas.FixtureOutput,
)


async def generate_fixture(payload: schemas.FixtureInput, *, generator: Generator | None = None) -> schemas.FixtureOutput:
	anonymous = payload.model_copy(update={"teams": anonymise_teams(payload.teams)})
	output = await run_flow(FIXTURE, anonymous, generator=generator)
	return restore_team_names(output, payload.teams)


# --- finance projection ------------------------------------------------------

PROJECTION = Flow(
	name="projection",
	render=prompts.projection,
	output=schemas.ProjectionOutput,
)


async def categorize_transaction(
	description: str,
	categories: Sequence[str],
	*,
	generator: Generator | None = None,
) -> str:
	payload = schemas.CategorizeInput(description=description, categories=list(categories))
	output = await run_flow(CATEGORIZE, payload, generator=generator)
	return output.category


async def get_districts(country: str, province: str, *, generator: Generator | None = None) -> List[str]:
	payload = schemas.DistrictsInput(country=country, province=province)
	output = await run_flow(DISTRICTS, payload, generator=generator)
	return output.districts


async def finance_projection(
	payload: schemas.ProjectionInput,
	*,
	generator: Generator | None = None,
) -> schemas.ProjectionOutput:
	return await run_flow(PROJECTION, payload, generator=generator)


__all__ = [
	"CATEGORIZE",
	"DISTRICTS",
	"FIXTURE",
	"PROJECTION",
	"GenerationError",
	"Flow",
	"run_flow",
	"categorize_transaction",
	"get_districts",
	"generate_fixture",
	"finance_projection",
]
