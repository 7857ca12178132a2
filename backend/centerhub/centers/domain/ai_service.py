"""Text-generation helpers exposed to center members."""

from __future__ import annotations

from typing import Any

from centerhub.ai import flows as ai_flows
from centerhub.ai import schemas as ai_schemas
from centerhub.ai.client import Generator
from centerhub.centers.domain.base import CenterServiceBase
from centerhub.centers.domain.gate import STAFF
from centerhub.centers.schemas import dto
from centerhub.infra.auth import AuthenticatedUser


class AIService(CenterServiceBase):
	def __init__(self, *, generator: Generator | None = None, **kwargs: Any) -> None:
		super().__init__(**kwargs)
		self.generator = generator

	async def districts(self, user: AuthenticatedUser, payload: dto.DistrictsRequest) -> dto.DistrictsResponse:
		names = await ai_flows.get_districts(payload.country, payload.province, generator=self.generator)
		return dto.DistrictsResponse(districts=names)

	async def fixture(
		self,
		user: AuthenticatedUser,
		center_id: str,
		payload: dto.FixtureRequest,
	) -> ai_schemas.FixtureOutput:
		await self.gate.authorize(center_id, user.id, STAFF)
		request = ai_schemas.FixtureInput(
			teams=[ai_schemas.Team(id=team.id, name=team.name) for team in payload.teams],
			description=payload.description,
			classification_type=payload.classification_type,
			available_dates=payload.available_dates,
			available_times=payload.available_times,
			available_locations=payload.available_locations,
		)
		return await ai_flows.generate_fixture(request, generator=self.generator)
