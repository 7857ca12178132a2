"""Center treasury: transactions, categories, visibility and managers."""

from __future__ import annotations

import logging
import re
import unicodedata
from typing import Any, Dict, List

from centerhub.ai import flows as ai_flows
from centerhub.ai import schemas as ai_schemas
from centerhub.ai.client import Generator
from centerhub.centers.domain import paths
from centerhub.centers.domain.base import CenterServiceBase
from centerhub.centers.domain.exceptions import ConflictError, NotFoundError, ValidationError
from centerhub.centers.domain.fanout import NotificationType, PermissionType, all_members, build_record, now_iso
from centerhub.centers.domain.gate import FINANCE_READER, OWNER, OWNER_OR_MANAGER, GateContext
from centerhub.centers.domain.initializer import FALLBACK_CATEGORY_ID
from centerhub.centers.domain.roles import id_set
from centerhub.centers.domain.sync import keyed_list
from centerhub.centers.schemas import dto
from centerhub.infra.auth import AuthenticatedUser
from centerhub.infra.tree import ABORT, is_valid_key

_LOG = logging.getLogger(__name__)


def category_slug(name: str) -> str:
	ascii_name = unicodedata.normalize("NFKD", name).encode("ascii", "ignore").decode("ascii")
	slug = re.sub(r"[^a-z0-9]+", "_", ascii_name.lower()).strip("_")
	return slug or "categoria"


def categories_of(subtree: Dict[str, Any]) -> List[dto.CategoryResponse]:
	items = subtree.get("categories")
	if not isinstance(items, list):
		return []
	return [
		dto.CategoryResponse(id=str(item["id"]), name=str(item.get("name", item["id"])))
		for item in items
		if isinstance(item, dict) and item.get("id")
	]


def transactions_of(subtree: Dict[str, Any], categories: List[dto.CategoryResponse]) -> List[dto.TransactionResponse]:
	names = {category.id: category.name for category in categories}
	records = keyed_list(
		subtree.get("transactions"),
		sort_key=lambda item: (str(item.get("date") or ""), str(item.get("created_at") or ""), item["id"]),
		reverse=True,
	)
	return [
		dto.TransactionResponse(
			id=record["id"],
			type=str(record.get("type", "expense")),
			amount=float(record.get("amount") or 0),
			description=str(record.get("description", "")),
			date=record.get("date"),
			category_id=str(record.get("category_id", FALLBACK_CATEGORY_ID)),
			category_name=names.get(str(record.get("category_id")), "Varios"),
			author_id=str(record.get("author_id", "")),
			created_at=record.get("created_at"),
		)
		for record in records
	]


def summarize(
	transactions: List[dto.TransactionResponse],
	categories: List[dto.CategoryResponse],
) -> tuple[float, float, List[dto.CategoryBreakdown]]:
	income = expense = 0.0
	breakdown: Dict[str, dto.CategoryBreakdown] = {
		category.id: dto.CategoryBreakdown(category_id=category.id, name=category.name) for category in categories
	}
	for item in transactions:
		row = breakdown.setdefault(
			item.category_id,
			dto.CategoryBreakdown(category_id=item.category_id, name=item.category_name),
		)
		if item.type == "income":
			income += item.amount
			row.income += item.amount
		else:
			expense += item.amount
			row.expense += item.amount
	return income, expense, list(breakdown.values())


def build_overview(subtree: Dict[str, Any], context: GateContext) -> dto.FinanceOverviewResponse:
	permissions = subtree.get("permissions") if isinstance(subtree.get("permissions"), dict) else {}
	categories = categories_of(subtree)
	transactions = transactions_of(subtree, categories)
	income, expense, breakdown = summarize(transactions, categories)
	return dto.FinanceOverviewResponse(
		public_visibility=bool(permissions.get("public_visibility", True)),
		can_manage=context.allows(OWNER_OR_MANAGER),
		managers=sorted(id_set(permissions.get("managers"))),
		categories=categories,
		transactions=transactions,
		income_total=round(income, 2),
		expense_total=round(expense, 2),
		balance=round(income - expense, 2),
		by_category=breakdown,
	)


class FinancesService(CenterServiceBase):
	def __init__(self, *, generator: Generator | None = None, **kwargs: Any) -> None:
		super().__init__(**kwargs)
		self.generator = generator

	async def _context(self, user: AuthenticatedUser, center_id: str, rule) -> GateContext:
		return await self.gate.authorize(center_id, user.id, rule, feature=paths.FINANCES)

	async def overview(self, user: AuthenticatedUser, center_id: str) -> dto.FinanceOverviewResponse:
		context = await self._context(user, center_id, FINANCE_READER)
		return build_overview(context.subtree, context)

	async def add_transaction(
		self,
		user: AuthenticatedUser,
		center_id: str,
		payload: dto.TransactionCreateRequest,
	) -> dto.TransactionResponse:
		context = await self._context(user, center_id, OWNER_OR_MANAGER)
		categories = categories_of(context.subtree)
		category = next((item for item in categories if item.id == payload.category_id), None)
		if category is None:
			raise ValidationError("unknown_category")
		record = {
			"type": payload.type,
			"amount": round(payload.amount, 2),
			"description": payload.description.strip(),
			"date": payload.date.isoformat(),
			"category_id": category.id,
			"author_id": user.id,
			"created_at": now_iso(),
		}
		transaction_id = await self.store.push(paths.feature(center_id, paths.FINANCES, "transactions"), record)
		_LOG.info("finances.transaction_added", extra={"center_id": center_id, "transaction_id": transaction_id})
		return dto.TransactionResponse(id=transaction_id, category_name=category.name, **record)

	async def delete_transaction(self, user: AuthenticatedUser, center_id: str, transaction_id: str) -> None:
		context = await self._context(user, center_id, OWNER_OR_MANAGER)
		transactions = context.subtree.get("transactions")
		if not is_valid_key(transaction_id) or not isinstance(transactions, dict) or transaction_id not in transactions:
			raise NotFoundError("transaction_not_found")
		await self.store.remove(paths.feature(center_id, paths.FINANCES, "transactions", transaction_id))

	async def add_category(
		self,
		user: AuthenticatedUser,
		center_id: str,
		payload: dto.CategoryCreateRequest,
	) -> dto.CategoryResponse:
		await self._context(user, center_id, OWNER_OR_MANAGER)
		name = payload.name.strip()
		category_id = category_slug(name)
		duplicate = False

		def apply(current: Any) -> Any:
			nonlocal duplicate
			items = list(current) if isinstance(current, list) else []
			duplicate = any(
				isinstance(item, dict)
				and (item.get("id") == category_id or str(item.get("name", "")).casefold() == name.casefold())
				for item in items
			)
			if duplicate:
				return ABORT
			# Keep the catch-all category last.
			insert_at = next(
				(index for index, item in enumerate(items) if isinstance(item, dict) and item.get("id") == FALLBACK_CATEGORY_ID),
				len(items),
			)
			items.insert(insert_at, {"id": category_id, "name": name})
			return items

		await self.store.transaction(paths.feature(center_id, paths.FINANCES, "categories"), apply)
		if duplicate:
			raise ConflictError("category_exists")
		return dto.CategoryResponse(id=category_id, name=name)

	async def set_visibility(
		self,
		user: AuthenticatedUser,
		center_id: str,
		payload: dto.VisibilityRequest,
	) -> dto.VisibilityResponse:
		context = await self._context(user, center_id, OWNER)

		def apply(current: Any) -> Any:
			previous = True if current is None else bool(current)
			if previous == payload.public_visibility:
				return ABORT
			return payload.public_visibility

		result = await self.store.transaction(
			paths.feature(center_id, paths.FINANCES, "permissions", "public_visibility"),
			apply,
		)
		if not result.committed:
			return dto.VisibilityResponse(public_visibility=payload.public_visibility, notified=0, failed=[])
		record = build_record(
			NotificationType.FINANCE_VISIBILITY_CHANGED,
			center_id=center_id,
			center_name=context.center_name,
			new_visibility=payload.public_visibility,
		)
		fanout = await self.fanout.fanout(all_members(context.membership), record)
		_LOG.info(
			"finances.visibility_changed",
			extra={"center_id": center_id, "public": payload.public_visibility, "notified": len(fanout.delivered)},
		)
		return dto.VisibilityResponse(
			public_visibility=payload.public_visibility,
			notified=len(fanout.delivered),
			failed=sorted(fanout.failed),
		)

	async def set_managers(
		self,
		user: AuthenticatedUser,
		center_id: str,
		payload: dto.ManagersRequest,
	) -> dto.ManagersResponse:
		context = await self._context(user, center_id, OWNER)
		managers, added, removed = await self.replace_delegates(context, payload.user_ids, PermissionType.FINANCE_MANAGER)
		return dto.ManagersResponse(managers=managers, added=added, removed=removed)

	async def categorize(
		self,
		user: AuthenticatedUser,
		center_id: str,
		payload: dto.CategorizeRequest,
	) -> dto.CategorizeResponse:
		context = await self._context(user, center_id, OWNER_OR_MANAGER)
		categories = categories_of(context.subtree)
		name = await ai_flows.categorize_transaction(
			payload.description,
			[category.name for category in categories],
			generator=self.generator,
		)
		match = next((category for category in categories if category.name == name), None)
		if match is None:
			match = next(
				(category for category in categories if category.id == FALLBACK_CATEGORY_ID),
				dto.CategoryResponse(id=FALLBACK_CATEGORY_ID, name=ai_flows.FALLBACK_CATEGORY),
			)
		return dto.CategorizeResponse(category_id=match.id, category_name=match.name)

	async def projection(self, user: AuthenticatedUser, center_id: str) -> dto.ProjectionResponse:
		context = await self._context(user, center_id, OWNER_OR_MANAGER)
		categories = categories_of(context.subtree)
		transactions = transactions_of(context.subtree, categories)
		income, expense, _ = summarize(transactions, categories)
		request = ai_schemas.ProjectionInput(
			transactions=[
				ai_schemas.ProjectionTransaction(
					amount=item.amount,
					type=item.type,
					category=item.category_name,
					date=item.date.isoformat(),
					description=item.description,
				)
				for item in transactions
			],
			current_balance=round(income - expense, 2),
		)
		output = await ai_flows.finance_projection(request, generator=self.generator)
		return dto.ProjectionResponse(**output.model_dump())
