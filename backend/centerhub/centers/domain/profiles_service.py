"""Global user profiles and per-center profiles."""

from __future__ import annotations

from typing import Any, Dict

from centerhub.centers.domain import paths
from centerhub.centers.domain.base import CenterServiceBase
from centerhub.centers.domain.exceptions import NotFoundError
from centerhub.centers.domain.gate import STAFF, require
from centerhub.centers.schemas import dto
from centerhub.infra.auth import AuthenticatedUser

PROFILE_FIELDS = ("name", "surname", "username", "photo_url")


def _as_profile(user_id: str, value: Any) -> dto.ProfileResponse:
	data = value if isinstance(value, dict) else {}
	return dto.ProfileResponse(user_id=user_id, **{key: data.get(key) for key in PROFILE_FIELDS})


class ProfilesService(CenterServiceBase):
	async def get_profile(self, user_id: str) -> dto.ProfileResponse:
		value = await self.store.get(paths.user(user_id))
		if not isinstance(value, dict) or not any(value.get(key) for key in PROFILE_FIELDS):
			raise NotFoundError("profile_not_found")
		return _as_profile(user_id, value)

	async def update_profile(self, user: AuthenticatedUser, payload: dto.ProfileUpdateRequest) -> dto.ProfileResponse:
		# Field-level update keeps the user's center index intact.
		values: Dict[str, Any] = payload.model_dump()
		await self.store.update(paths.user(user.id), values)
		return _as_profile(user.id, await self.store.get(paths.user(user.id)))

	async def get_center_profile(
		self,
		user: AuthenticatedUser,
		center_id: str,
		target_id: str,
	) -> dto.CenterProfileResponse:
		context = await self.gate.authorize(center_id, user.id)
		if target_id != user.id:
			require(STAFF, context)
		if not context.membership.is_member(target_id):
			raise NotFoundError("member_not_found")
		value = await self.store.get(paths.center_profile(center_id, target_id))
		data = value if isinstance(value, dict) else {}
		show_document = target_id == user.id or context.actor.is_owner
		return dto.CenterProfileResponse(
			center_id=center_id,
			user_id=target_id,
			course=data.get("course"),
			document_type=data.get("document_type") if show_document else None,
			document_number=data.get("document_number") if show_document else None,
		)
