"""Workshops announced by the center."""

from __future__ import annotations

from typing import Any, Dict

from centerhub.centers.domain import paths
from centerhub.centers.domain.base import CenterServiceBase
from centerhub.centers.domain.exceptions import NotFoundError
from centerhub.centers.domain.fanout import PermissionType, now_iso
from centerhub.centers.domain.gate import OWNER, OWNER_OR_MANAGER
from centerhub.centers.domain.roles import id_set
from centerhub.centers.domain.sync import newest_first
from centerhub.centers.schemas import dto
from centerhub.infra.auth import AuthenticatedUser
from centerhub.infra.tree import ABORT, is_valid_key


def _record(payload: dto.WorkshopRequest) -> Dict[str, Any]:
	data = payload.model_dump(mode="json")
	for key in ("title", "description", "location", "instructor"):
		data[key] = data[key].strip()
	return data


class WorkshopsService(CenterServiceBase):
	@staticmethod
	def _items(center_id: str, *rest: str) -> str:
		return paths.feature(center_id, paths.WORKSHOPS, "items", *rest)

	async def list_workshops(self, user: AuthenticatedUser, center_id: str) -> dto.WorkshopListResponse:
		context = await self.gate.authorize(center_id, user.id, feature=paths.WORKSHOPS)
		items = newest_first("date")(context.subtree.get("items"))
		return dto.WorkshopListResponse(
			items=[dto.WorkshopResponse(**item) for item in items],
			can_manage=context.allows(OWNER_OR_MANAGER),
			managers=sorted(id_set(context.permissions.get("managers"))),
		)

	async def create_workshop(
		self,
		user: AuthenticatedUser,
		center_id: str,
		payload: dto.WorkshopRequest,
	) -> dto.WorkshopResponse:
		await self.gate.authorize(center_id, user.id, OWNER_OR_MANAGER, feature=paths.WORKSHOPS)
		record = {**_record(payload), "author_id": user.id, "author_name": user.name, "created_at": now_iso()}
		workshop_id = await self.store.push(self._items(center_id), record)
		return dto.WorkshopResponse(id=workshop_id, **record)

	async def update_workshop(
		self,
		user: AuthenticatedUser,
		center_id: str,
		workshop_id: str,
		payload: dto.WorkshopRequest,
	) -> dto.WorkshopResponse:
		await self.gate.authorize(center_id, user.id, OWNER_OR_MANAGER, feature=paths.WORKSHOPS)
		if not is_valid_key(workshop_id):
			raise NotFoundError("workshop_not_found")
		fields = _record(payload)

		def apply(current: Any) -> Any:
			if not isinstance(current, dict):
				return ABORT
			return {**current, **fields}

		result = await self.store.transaction(self._items(center_id, workshop_id), apply)
		if not result.committed and not isinstance(result.value, dict):
			raise NotFoundError("workshop_not_found")
		return dto.WorkshopResponse(id=workshop_id, **result.value)

	async def delete_workshop(self, user: AuthenticatedUser, center_id: str, workshop_id: str) -> None:
		context = await self.gate.authorize(center_id, user.id, OWNER_OR_MANAGER, feature=paths.WORKSHOPS)
		items = context.subtree.get("items")
		if not is_valid_key(workshop_id) or not isinstance(items, dict) or workshop_id not in items:
			raise NotFoundError("workshop_not_found")
		await self.store.remove(self._items(center_id, workshop_id))

	async def set_managers(
		self,
		user: AuthenticatedUser,
		center_id: str,
		payload: dto.ManagersRequest,
	) -> dto.ManagersResponse:
		context = await self.gate.authorize(center_id, user.id, OWNER, feature=paths.WORKSHOPS)
		managers, added, removed = await self.replace_delegates(context, payload.user_ids, PermissionType.WORKSHOP_MANAGER)
		return dto.ManagersResponse(managers=managers, added=added, removed=removed)
