from datetime import date, datetime, timezone

import pytest

from context_access.models.assignment import ContextKind, UserAssignment
from context_access.schemas.assignment import (
    AssignmentBulkCreate,
    AssignmentCreate,
    AssignmentFilters,
    AssignmentTransfer,
    AssignmentUpdate,
)
from context_access.services.assignments import (
    AssignmentNotFoundError,
    AssignmentService,
    AssignmentValidationError,
    DuplicateAssignmentError,
    ImmutableFieldError,
    RoleNotFoundError,
    UserNotFoundError,
)
from context_access.services.context_resolver import ContextResolver
from context_access.services.context_validator import (
    ContextNotFoundError,
    UnsupportedContextKindError,
    WrongTenantError,
)

FIXED_NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture()
def service(session) -> AssignmentService:  # noqa: ANN001
    return AssignmentService(session, clock=lambda: FIXED_NOW)


@pytest.fixture()
def world(seed, tenant):  # noqa: ANN001, ANN201
    location_id = seed.location(tenant)
    return {
        "role": seed.role(),
        "location": location_id,
        "project": seed.project(tenant, location_id),
        "user": seed.user(tenant),
        "other_user": seed.user(tenant),
    }


def _create(service, admin, world, **overrides) -> UserAssignment:  # noqa: ANN001
    fields = {
        "user_id": world["user"],
        "role_id": world["role"],
        "context_type": "project",
        "context_id": world["project"],
    }
    fields.update(overrides)
    return service.create(AssignmentCreate(**fields), actor=admin)


def test_create_records_assignment_and_audit_fields(service, admin, world) -> None:  # noqa: ANN001
    assignment = _create(service, admin, world, trade_specialization="Electrical", is_primary=True)

    assert assignment.id is not None
    assert assignment.context_type == ContextKind.PROJECT.value
    assert assignment.trade_specialization == "Electrical"
    assert assignment.is_primary is True
    assert assignment.is_deleted is False
    assert assignment.created_by == admin.user_id
    assert assignment.updated_by == admin.user_id


def test_duplicate_live_assignment_is_rejected(service, admin, world) -> None:  # noqa: ANN001
    _create(service, admin, world)

    with pytest.raises(DuplicateAssignmentError):
        _create(service, admin, world)


def test_same_context_with_different_role_is_allowed(service, seed, admin, world) -> None:  # noqa: ANN001
    _create(service, admin, world)
    second = _create(service, admin, world, role_id=seed.role("Foreman"))

    assert second.id is not None


def test_delete_then_recreate_keeps_history(service, session, admin, tenant, world) -> None:  # noqa: ANN001
    first = _create(service, admin, world)
    service.delete(first.id, actor=admin)
    second = _create(service, admin, world)

    assert second.id != first.id
    rows, total, _, _ = service.list(
        AssignmentFilters(user_id=world["user"], include_deleted=True),
        tenant_id=tenant,
    )
    assert total == 2
    assert {row.is_deleted for row in rows} == {True, False}
    assert ContextResolver(session).resolve(world["user"], "project", tenant) == frozenset({world["project"]})


def test_delete_is_idempotent(service, admin, world) -> None:  # noqa: ANN001
    assignment = _create(service, admin, world)

    service.delete(assignment.id, actor=admin)
    again = service.delete(assignment.id, actor=admin)

    assert again.is_deleted is True


def test_delete_unknown_assignment(service, admin) -> None:  # noqa: ANN001
    with pytest.raises(AssignmentNotFoundError):
        service.delete(12345, actor=admin)


def test_inverted_validity_window_is_rejected(service, admin, world) -> None:  # noqa: ANN001
    with pytest.raises(AssignmentValidationError):
        _create(service, admin, world, valid_from=date(2024, 2, 1), valid_until=date(2024, 1, 31))


def test_single_day_window_is_accepted(service, admin, world) -> None:  # noqa: ANN001
    assignment = _create(service, admin, world, valid_from=date(2024, 2, 1), valid_until=date(2024, 2, 1))

    assert assignment.valid_from == assignment.valid_until


def test_create_rejects_unknown_or_foreign_targets(service, seed, admin, world) -> None:  # noqa: ANN001
    other_tenant = seed.org("Other Corp")
    foreign_project = seed.project(other_tenant, seed.location(other_tenant))
    foreign_user = seed.user(other_tenant)

    with pytest.raises(ContextNotFoundError):
        _create(service, admin, world, context_id=9999)
    with pytest.raises(WrongTenantError):
        _create(service, admin, world, context_id=foreign_project)
    with pytest.raises(UnsupportedContextKindError):
        _create(service, admin, world, context_type="equipment", context_id=1)
    with pytest.raises(UserNotFoundError):
        _create(service, admin, world, user_id=9999)
    with pytest.raises(WrongTenantError):
        _create(service, admin, world, user_id=foreign_user)
    with pytest.raises(RoleNotFoundError):
        _create(service, admin, world, role_id=9999)


def test_update_changes_mutable_fields(service, admin, world) -> None:  # noqa: ANN001
    assignment = _create(service, admin, world)

    updated = service.update(
        assignment.id,
        AssignmentUpdate(trade_specialization="Plumbing", valid_until=date(2024, 12, 31)),
        actor=admin,
    )

    assert updated.trade_specialization == "Plumbing"
    assert updated.valid_until == date(2024, 12, 31)


@pytest.mark.parametrize("field", ["user_id", "context_type", "context_id"])
def test_update_refuses_identity_changes(service, admin, world, field) -> None:  # noqa: ANN001
    assignment = _create(service, admin, world)
    new_values = {"user_id": world["other_user"], "context_type": "location", "context_id": world["location"]}

    with pytest.raises(ImmutableFieldError):
        service.update(assignment.id, AssignmentUpdate(**{field: new_values[field]}), actor=admin)


def test_update_checks_merged_window(service, admin, world) -> None:  # noqa: ANN001
    assignment = _create(service, admin, world, valid_from=date(2024, 3, 1))

    with pytest.raises(AssignmentValidationError):
        service.update(assignment.id, AssignmentUpdate(valid_until=date(2024, 2, 1)), actor=admin)


def test_update_without_changes_is_rejected(service, admin, world) -> None:  # noqa: ANN001
    assignment = _create(service, admin, world)

    with pytest.raises(AssignmentValidationError):
        service.update(assignment.id, AssignmentUpdate(), actor=admin)


def test_update_role_onto_existing_tuple_is_duplicate(service, seed, admin, world) -> None:  # noqa: ANN001
    foreman = seed.role("Foreman")
    _create(service, admin, world, role_id=foreman)
    assignment = _create(service, admin, world)

    with pytest.raises(DuplicateAssignmentError):
        service.update(assignment.id, AssignmentUpdate(role_id=foreman), actor=admin)


def test_bulk_create_is_all_or_nothing(service, session, seed, admin, tenant, world) -> None:  # noqa: ANN001
    third = seed.user(tenant)
    _create(service, admin, world, user_id=world["other_user"])
    session.commit()

    with pytest.raises(DuplicateAssignmentError):
        service.bulk_create(
            AssignmentBulkCreate(
                user_ids=[world["user"], world["other_user"], third],
                role_id=world["role"],
                context_type="project",
                context_id=world["project"],
            ),
            actor=admin,
        )

    _, total, _, _ = service.list(AssignmentFilters(context_id=world["project"]), tenant_id=tenant)
    assert total == 1


def test_bulk_create_deduplicates_user_ids(service, admin, world) -> None:  # noqa: ANN001
    created = service.bulk_create(
        AssignmentBulkCreate(
            user_ids=[world["user"], world["other_user"], world["user"]],
            role_id=world["role"],
            context_type="location",
            context_id=world["location"],
        ),
        actor=admin,
    )

    assert sorted(item.user_id for item in created) == sorted([world["user"], world["other_user"]])


def test_transfer_moves_live_assignments(service, session, admin, tenant, world) -> None:  # noqa: ANN001
    project_assignment = _create(service, admin, world, is_primary=True)
    _create(service, admin, world, context_type="location", context_id=world["location"])

    moved = service.transfer(
        AssignmentTransfer(from_user_id=world["user"], to_user_id=world["other_user"]),
        actor=admin,
    )

    assert len(moved) == 2
    assert all(item.user_id == world["other_user"] for item in moved)
    assert all(item.is_primary is False for item in moved)
    assert service.get(project_assignment.id, tenant_id=tenant).is_deleted is True
    resolver = ContextResolver(session)
    assert resolver.resolve(world["user"], "project", tenant) == frozenset()
    assert resolver.resolve(world["other_user"], "project", tenant) == frozenset({world["project"]})


def test_transfer_with_explicit_ids_preserving_primary(service, admin, world) -> None:  # noqa: ANN001
    chosen = _create(service, admin, world, is_primary=True)
    _create(service, admin, world, context_type="location", context_id=world["location"])

    moved = service.transfer(
        AssignmentTransfer(
            from_user_id=world["user"],
            to_user_id=world["other_user"],
            assignment_ids=[chosen.id],
            preserve_primary=True,
        ),
        actor=admin,
    )

    assert [(item.context_type, item.is_primary) for item in moved] == [("project", True)]


def test_transfer_validation(service, admin, world) -> None:  # noqa: ANN001
    with pytest.raises(AssignmentValidationError):
        service.transfer(AssignmentTransfer(from_user_id=world["user"], to_user_id=world["user"]), actor=admin)
    with pytest.raises(AssignmentNotFoundError):
        service.transfer(AssignmentTransfer(from_user_id=world["user"], to_user_id=world["other_user"]), actor=admin)
    with pytest.raises(AssignmentNotFoundError):
        service.transfer(
            AssignmentTransfer(from_user_id=world["user"], to_user_id=world["other_user"], assignment_ids=[777]),
            actor=admin,
        )


def test_list_filters_and_paginates(service, admin, tenant, world) -> None:  # noqa: ANN001
    _create(service, admin, world)
    _create(service, admin, world, context_type="location", context_id=world["location"])
    _create(service, admin, world, user_id=world["other_user"], valid_until=date(2024, 1, 1))

    page_one, total, page, page_size = service.list(AssignmentFilters(page_size=2), tenant_id=tenant)
    page_two, _, _, _ = service.list(AssignmentFilters(page=2, page_size=2), tenant_id=tenant)
    active, active_total, _, _ = service.list(AssignmentFilters(active_only=True), tenant_id=tenant)
    locations, location_total, _, _ = service.list(
        AssignmentFilters(context_type=ContextKind.LOCATION), tenant_id=tenant
    )

    assert (total, page, page_size) == (3, 1, 2)
    assert len(page_one) == 2 and len(page_two) == 1
    assert {row.id for row in page_one}.isdisjoint({row.id for row in page_two})
    assert active_total == 2
    assert all(row.user_id == world["user"] for row in active)
    assert location_total == 1 and locations[0].context_id == world["location"]


def test_list_caps_page_size(session, admin, tenant) -> None:  # noqa: ANN001
    service = AssignmentService(session, max_page_size=10)

    _, _, _, page_size = service.list(AssignmentFilters(page_size=500), tenant_id=tenant)

    assert page_size == 10


def test_list_is_tenant_scoped(service, seed, admin, world) -> None:  # noqa: ANN001
    _create(service, admin, world)
    other_tenant = seed.org("Other Corp")

    _, total, _, _ = service.list(AssignmentFilters(), tenant_id=other_tenant)

    assert total == 0


def test_user_summary_counts_active_assignments(service, admin, tenant, world) -> None:  # noqa: ANN001
    _create(service, admin, world)
    _create(service, admin, world, context_type="location", context_id=world["location"], valid_until=date(2024, 1, 1))
    _create(service, admin, world, context_type="organization", context_id=tenant)

    summary = service.user_summary(world["user"], tenant_id=tenant)

    assert summary["total_assignments"] == 3
    assert summary["active_assignments"] == 2
    assert summary["assignments_by_type"] == {"project": 1, "location": 1, "organization": 1}


def test_user_summary_hides_foreign_users(service, seed, tenant) -> None:  # noqa: ANN001
    foreign_user = seed.user(seed.org("Other Corp"))

    with pytest.raises(UserNotFoundError):
        service.user_summary(foreign_user, tenant_id=tenant)


def test_context_assignments_lists_live_rows(service, admin, tenant, world) -> None:  # noqa: ANN001
    kept = _create(service, admin, world)
    removed = _create(service, admin, world, user_id=world["other_user"])
    service.delete(removed.id, actor=admin)

    result = service.context_assignments(ContextKind.PROJECT, world["project"], tenant_id=tenant)

    assert result["context_type"] == "project"
    assert [item.id for item in result["assignments"]] == [kept.id]
