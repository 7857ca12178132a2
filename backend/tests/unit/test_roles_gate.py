from __future__ import annotations

import pytest

from centerhub.centers.domain import gate, paths
from centerhub.centers.domain.exceptions import ForbiddenError, NotFoundError
from centerhub.centers.domain.gate import PermissionGate
from centerhub.centers.domain.roles import Membership, Role, id_set, resolve_actor, resolve_role


def _membership() -> Membership:
	return Membership.from_snapshot(
		{
			"owner_id": "owner",
			"members": {
				"admins_plus": {"ap": True},
				"admins": {"ad": True, "both": True},
				"students": {"st": True, "both": True},
			},
		}
	)


def test_id_set_tolerates_odd_shapes():
	assert id_set({"a": True, "b": False}) == frozenset({"a"})
	assert id_set(["a", "", None, "b"]) == frozenset({"a", "b"})
	assert id_set("not-a-set") == frozenset()
	assert id_set(None) == frozenset()


def test_resolve_role_follows_the_hierarchy():
	membership = _membership()
	assert resolve_role("owner", membership) is Role.OWNER
	assert resolve_role("ap", membership) is Role.ADMIN_PLUS
	assert resolve_role("ad", membership) is Role.ADMIN
	assert resolve_role("st", membership) is Role.STUDENT
	# present in two sets: the higher tier wins
	assert resolve_role("both", membership) is Role.ADMIN


def test_delegation_only_lifts_students():
	membership = _membership()
	managers = {"st": True, "ad": True}
	assert resolve_role("st", membership, managers) is Role.MANAGER
	assert resolve_role("ad", membership, managers) is Role.ADMIN
	actor = resolve_actor("ad", membership, managers)
	assert actor.delegated
	assert actor.role is Role.ADMIN


def test_member_ids_are_unique_owner_first():
	ids = _membership().member_ids()
	assert ids[0] == "owner"
	assert sorted(ids) == sorted({"owner", "ap", "ad", "both", "st"})
	assert len(ids) == len(set(ids))


def test_outsider_is_not_a_member():
	membership = _membership()
	actor = resolve_actor("stranger", membership)
	assert not actor.is_member
	assert membership.tier("stranger") is None


def test_finance_reader_rule():
	membership = _membership()
	student = resolve_actor("st", membership)
	manager = resolve_actor("st", membership, {"st": True})
	owner = resolve_actor("owner", membership)
	assert gate.FINANCE_READER.check(student, {"public_visibility": True})
	assert not gate.FINANCE_READER.check(student, {"public_visibility": False})
	assert gate.FINANCE_READER.check(manager, {"public_visibility": False})
	assert gate.FINANCE_READER.check(owner, {"public_visibility": False})


def test_score_editor_rule_respects_admin_plus_switch():
	membership = _membership()
	admin_plus = resolve_actor("ap", membership)
	assert not gate.SCORE_EDITOR.check(admin_plus, {"admins_plus_allowed": False})
	assert gate.SCORE_EDITOR.check(admin_plus, {"admins_plus_allowed": True})


@pytest.mark.asyncio
async def test_authorize_requires_membership(tree_store, seed_center):
	center_id = await seed_center(students=["st"])
	permission_gate = PermissionGate(store=tree_store)

	with pytest.raises(ForbiddenError) as exc:
		await permission_gate.authorize(center_id, "stranger")
	assert exc.value.detail == "membership_required"

	context = await permission_gate.authorize(center_id, "st")
	assert context.actor.role is Role.STUDENT
	assert context.center_name == "Centro de Estudiantes"


@pytest.mark.asyncio
async def test_authorize_unknown_center(tree_store):
	with pytest.raises(NotFoundError):
		await PermissionGate(store=tree_store).authorize("nope", "owner")


@pytest.mark.asyncio
async def test_authorize_reads_fresh_delegation(tree_store, seed_center):
	center_id = await seed_center(students=["st"])
	permission_gate = PermissionGate(store=tree_store)

	with pytest.raises(ForbiddenError) as exc:
		await permission_gate.authorize(center_id, "st", gate.OWNER_OR_MANAGER, feature=paths.WORKSHOPS)
	assert exc.value.detail == "manager_role_required"

	await tree_store.set(paths.feature(center_id, paths.WORKSHOPS, "permissions", "managers", "st"), True)
	context = await permission_gate.authorize(center_id, "st", gate.OWNER_OR_MANAGER, feature=paths.WORKSHOPS)
	assert context.actor.role is Role.MANAGER


@pytest.mark.asyncio
async def test_load_initialises_the_feature(tree_store, seed_center):
	center_id = await seed_center()
	context = await PermissionGate(store=tree_store).load(center_id, "owner", paths.ANONYMOUS_CHAT)
	assert context.subtree["permissions"] == {"moderators": {}}
	assert await tree_store.exists(paths.feature(center_id, paths.ANONYMOUS_CHAT))
