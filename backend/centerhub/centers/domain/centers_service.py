"""Center lifecycle, access codes and membership management."""

from __future__ import annotations

import asyncio
import logging
import secrets
import string
from typing import Any, Dict, List, Mapping

from centerhub.centers.domain import paths
from centerhub.centers.domain.base import CenterServiceBase
from centerhub.centers.domain.documents import document_format, is_valid_document
from centerhub.centers.domain.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from centerhub.centers.domain.fanout import (
	NotificationType,
	all_members,
	build_record,
	now_iso,
	owner_and_admins_plus,
	single,
)
from centerhub.centers.domain.gate import DELEGATION_KEYS, OWNER, OWNER_OR_ADMIN_PLUS, GateContext
from centerhub.centers.domain.initializer import course_names
from centerhub.centers.domain.roles import ROLE_HIERARCHY, TIER_SETS, Membership, Role, resolve_role
from centerhub.centers.schemas import dto
from centerhub.infra.auth import AuthenticatedUser
from centerhub.infra.tree import is_valid_key

_LOG = logging.getLogger(__name__)

_CODE_ALPHABET = string.ascii_letters + string.digits
PRIMARY_CODE_LENGTH = 20
SECONDARY_CODE_LENGTH = 8

# Roles granted by each access code kind.
CODE_ROLES = {"admin": Role.ADMIN, "student": Role.STUDENT, "secondary": Role.STUDENT}


def generate_code(length: int) -> str:
	return "".join(secrets.choice(_CODE_ALPHABET) for _ in range(length))


def _profile_fields(profile: Any) -> Dict[str, Any]:
	return profile if isinstance(profile, dict) else {}


class CentersService(CenterServiceBase):
	"""Creates centers, admits members and manages their tiers."""

	@staticmethod
	def to_response(center_id: str, center: Mapping[str, Any], user_id: str) -> dto.CenterResponse:
		membership = Membership.from_snapshot(center)
		role = resolve_role(user_id, membership)
		codes = center.get("codes") if role in (Role.OWNER, Role.ADMIN_PLUS) else None
		return dto.CenterResponse(
			id=center_id,
			name=center.get("name", ""),
			school_name=center.get("school_name", ""),
			country=center.get("country", ""),
			province=center.get("province", ""),
			district=center.get("district", ""),
			city=center.get("city", ""),
			education_level=center.get("education_level", ""),
			representative_animal=center.get("representative_animal"),
			primary_color=center.get("primary_color", "#1e40af"),
			secondary_color=center.get("secondary_color"),
			tertiary_color=center.get("tertiary_color"),
			courses=course_names(center),
			owner_id=str(center.get("owner_id", "")),
			created_at=center.get("created_at"),
			access_method_document=bool(center.get("access_method_document")),
			member_count=len(membership.member_ids()),
			my_role=role.value,
			codes=dict(codes) if isinstance(codes, dict) else None,
		)

	async def create_center(self, user: AuthenticatedUser, payload: dto.CenterCreateRequest) -> dto.CenterResponse:
		for course in payload.courses:
			if not is_valid_key(course):
				raise ValidationError("invalid_course_name")
		owner_course = payload.owner_course or payload.courses[0]
		if owner_course not in payload.courses:
			raise ValidationError("invalid_course")
		owner_profile: Dict[str, Any] = {"course": owner_course}
		if payload.access_method_document:
			fmt = document_format(payload.country)
			if fmt is None:
				raise ValidationError("unsupported_country")
			if not is_valid_document(payload.country, payload.owner_document_number):
				raise ValidationError("invalid_document")
			owner_profile["document_type"] = fmt.name
			owner_profile["document_number"] = payload.owner_document_number.strip()

		center_id = self.store.push_key()
		codes = {
			"admin": generate_code(PRIMARY_CODE_LENGTH),
			"student": generate_code(PRIMARY_CODE_LENGTH),
		}
		if payload.secondary_code:
			codes["secondary"] = generate_code(SECONDARY_CODE_LENGTH)
		record = payload.model_dump(exclude={"owner_course", "owner_document_number", "secondary_code"})
		record.update(
			{
				"owner_id": user.id,
				"created_at": now_iso(),
				"members": {"admins": {}, "admins_plus": {}, "students": {}},
				"codes": codes,
			}
		)
		updates: Dict[str, Any] = {
			paths.center(center_id): record,
			paths.center_profile(center_id, user.id): owner_profile,
			f"{paths.user(user.id)}/centers/{center_id}": True,
		}
		for kind, code in codes.items():
			updates[paths.access_code(code)] = {"center_id": center_id, "kind": kind}
		await self.store.update("", updates)
		_LOG.info("centers.created", extra={"center_id": center_id, "owner_id": user.id})
		return self.to_response(center_id, record, user.id)

	async def list_my_centers(self, user: AuthenticatedUser) -> dto.CenterListResponse:
		index = await self.store.get(f"{paths.user(user.id)}/centers")
		center_ids = sorted(index.keys()) if isinstance(index, dict) else []
		centers = await asyncio.gather(*(self.store.get(paths.center(center_id)) for center_id in center_ids))
		items = []
		for center_id, center in zip(center_ids, centers):
			if isinstance(center, dict) and Membership.from_snapshot(center).is_member(user.id):
				items.append(self.to_response(center_id, center, user.id))
		return dto.CenterListResponse(items=items)

	async def get_center(self, user: AuthenticatedUser, center_id: str) -> dto.CenterResponse:
		context = await self.gate.authorize(center_id, user.id)
		return self.to_response(center_id, context.center, user.id)

	async def _resolve_code(self, code: str) -> tuple[str, Dict[str, Any], Role]:
		entry = await self.store.get(paths.access_code(code)) if is_valid_key(code) else None
		if not isinstance(entry, dict) or entry.get("kind") not in CODE_ROLES:
			raise NotFoundError("invalid_code")
		center_id = str(entry.get("center_id"))
		center = await self.store.get(paths.center(center_id))
		if not isinstance(center, dict):
			raise NotFoundError("invalid_code")
		return center_id, center, CODE_ROLES[entry["kind"]]

	async def preview_code(self, user: AuthenticatedUser, code: str) -> dto.AccessCodePreview:
		center_id, center, role = await self._resolve_code(code)
		membership = Membership.from_snapshot(center)
		already_member = membership.is_member(user.id)
		profile = await self.store.get(paths.center_profile(center_id, user.id))
		requires_document = bool(center.get("access_method_document"))
		fmt = document_format(center.get("country", "")) if requires_document else None
		return dto.AccessCodePreview(
			center_id=center_id,
			center_name=center.get("name", ""),
			role=role.value,
			already_member=already_member,
			was_member=profile is not None and not already_member,
			requires_document=requires_document,
			document_type=fmt.name if fmt else None,
			courses=course_names(center),
		)

	async def join(self, user: AuthenticatedUser, payload: dto.JoinRequest) -> dto.CenterResponse:
		center_id, center, role = await self._resolve_code(payload.code)
		membership = Membership.from_snapshot(center)
		if membership.is_member(user.id):
			raise ConflictError("already_member")
		if payload.course not in course_names(center):
			raise ValidationError("invalid_course")
		profile: Dict[str, Any] = {"course": payload.course}
		if center.get("access_method_document"):
			country = center.get("country", "")
			if not is_valid_document(country, payload.document_number):
				raise ValidationError("invalid_document")
			profile["document_type"] = document_format(country).name
			profile["document_number"] = payload.document_number.strip()

		await self.store.update(
			"",
			{
				f"{paths.members(center_id)}/{TIER_SETS[role]}/{user.id}": True,
				paths.center_profile(center_id, user.id): profile,
				f"{paths.user(user.id)}/centers/{center_id}": True,
			},
		)
		record = build_record(
			NotificationType.NEW_MEMBER,
			center_id=center_id,
			center_name=center.get("name", ""),
			subject_user_id=user.id,
			subject_user_name=user.name,
		)
		await self.fanout.fanout(owner_and_admins_plus(membership), record, exclude=[user.id])
		joined = await self.store.get(paths.center(center_id)) or center
		return self.to_response(center_id, joined, user.id)

	async def my_role(self, user: AuthenticatedUser, center_id: str) -> dto.MyRoleResponse:
		context = await self.gate.authorize(center_id, user.id)
		features: Dict[str, str] = {}
		for feature in DELEGATION_KEYS:
			scoped = await self.gate.load(center_id, user.id, feature)
			features[feature] = scoped.actor.role.value
		return dto.MyRoleResponse(center_id=center_id, role=context.actor.role.value, features=features)

	async def roster(self, user: AuthenticatedUser, center_id: str) -> dto.RosterResponse:
		context = await self.gate.authorize(center_id, user.id)
		member_ids = context.membership.member_ids()
		center_profiles = _profile_fields(await self.store.get(paths.center_profiles(center_id)))
		profiles = await asyncio.gather(*(self.store.get(paths.user(member_id)) for member_id in member_ids))
		show_documents = context.actor.is_owner
		items: List[dto.MemberResponse] = []
		for member_id, profile in zip(member_ids, profiles):
			profile = _profile_fields(profile)
			center_profile = _profile_fields(center_profiles.get(member_id))
			items.append(
				dto.MemberResponse(
					user_id=member_id,
					role=resolve_role(member_id, context.membership).value,
					name=profile.get("name"),
					surname=profile.get("surname"),
					username=profile.get("username"),
					photo_url=profile.get("photo_url"),
					course=center_profile.get("course"),
					document_number=center_profile.get("document_number") if show_documents else None,
				)
			)
		items.sort(key=lambda item: (-ROLE_HIERARCHY[Role(item.role)], (item.name or item.username or "").lower()))
		return dto.RosterResponse(items=items)

	@staticmethod
	def _check_manageable(context: GateContext, target_id: str) -> Role:
		target_tier = context.membership.tier(target_id)
		if target_tier is None:
			raise NotFoundError("member_not_found")
		if target_tier is Role.OWNER:
			raise ForbiddenError("owner_is_immutable")
		if target_id == context.actor.user_id:
			raise ForbiddenError("cannot_manage_self")
		if not context.actor.is_owner and target_tier not in (Role.ADMIN, Role.STUDENT):
			raise ForbiddenError("insufficient_role")
		return target_tier

	async def change_role(
		self,
		user: AuthenticatedUser,
		center_id: str,
		target_id: str,
		payload: dto.RoleChangeRequest,
	) -> dto.MemberResponse:
		context = await self.gate.authorize(center_id, user.id, OWNER_OR_ADMIN_PLUS)
		self._check_manageable(context, target_id)
		new_role = Role(payload.role)
		if not context.actor.is_owner and new_role not in (Role.ADMIN, Role.STUDENT):
			raise ForbiddenError("insufficient_role")
		base = paths.members(center_id)
		updates: Dict[str, Any] = {f"{set_key}/{target_id}": None for set_key in TIER_SETS.values()}
		updates[f"{TIER_SETS[new_role]}/{target_id}"] = True
		await self.store.update(base, updates)
		record = build_record(
			NotificationType.ROLE_CHANGED,
			center_id=center_id,
			center_name=context.center_name,
			new_role=new_role.value,
		)
		await self.fanout.fanout(single(target_id), record)
		_LOG.info(
			"centers.role_changed",
			extra={"center_id": center_id, "target_id": target_id, "new_role": new_role.value},
		)
		return dto.MemberResponse(user_id=target_id, role=new_role.value)

	async def expel(self, user: AuthenticatedUser, center_id: str, target_id: str) -> None:
		context = await self.gate.authorize(center_id, user.id, OWNER_OR_ADMIN_PLUS)
		self._check_manageable(context, target_id)
		updates: Dict[str, Any] = {
			f"{paths.members(center_id)}/{set_key}/{target_id}": None for set_key in TIER_SETS.values()
		}
		for feature, key in DELEGATION_KEYS.items():
			updates[f"{paths.permissions(center_id, feature)}/{key}/{target_id}"] = None
		updates[paths.center_profile(center_id, target_id)] = None
		updates[f"{paths.user(target_id)}/centers/{center_id}"] = None
		await self.store.update("", updates)
		record = build_record(
			NotificationType.EXPULSION,
			center_id=center_id,
			center_name=context.center_name,
		)
		await self.fanout.fanout(single(target_id), record)
		_LOG.info("centers.member_expelled", extra={"center_id": center_id, "target_id": target_id})

	async def delete_center(self, user: AuthenticatedUser, center_id: str) -> dto.DeleteCenterResponse:
		context = await self.gate.authorize(center_id, user.id, OWNER)
		member_ids = all_members(context.membership)
		record = build_record(
			NotificationType.CENTER_DELETED,
			center_id=center_id,
			center_name=context.center_name,
		)
		result = await self.fanout.fanout(member_ids, record)
		updates: Dict[str, Any] = {
			paths.center(center_id): None,
			paths.center_profiles(center_id): None,
		}
		codes = context.center.get("codes")
		if isinstance(codes, dict):
			for code in codes.values():
				if is_valid_key(str(code)):
					updates[paths.access_code(str(code))] = None
		for member_id in member_ids:
			updates[f"{paths.user(member_id)}/centers/{center_id}"] = None
		await self.store.update("", updates)
		_LOG.info(
			"centers.deleted",
			extra={"center_id": center_id, "notified": len(result.delivered), "failed": len(result.failed)},
		)
		return dto.DeleteCenterResponse(
			deleted=True,
			notified=len(result.delivered),
			failed=sorted(result.failed),
		)

