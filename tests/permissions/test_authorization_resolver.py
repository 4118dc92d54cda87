import pytest

from src.staffing_engine.staffing_engine.core.enums import PermissionType
from src.staffing_engine.staffing_engine.permissions.resolver import AuthorizationResolver

SHIFT_ID = 10
JOB_ID = 20
COMPANY_ID = 30


@pytest.fixture
def resolver(assignment_repo, permission_repo):
    return AuthorizationResolver(assignment_repo, permission_repo)


@pytest.fixture
def shift(shift_repo):
    return shift_repo.get_by_id(SHIFT_ID)


def test_admin_and_staff_always_manage(resolver, users, shift):
    assert resolver.can_manage(users["admin"], shift)
    assert resolver.can_manage(users["staff"], shift)


def test_inactive_users_manage_nothing(resolver, users, shift):
    assert not resolver.can_manage(users["inactive_admin"], shift)


def test_non_crew_chief_roles_never_manage(resolver, users, shift, assignment_repo):
    assignment_repo.create(shift_id=SHIFT_ID, user_id=users["worker"].user_id, role_code="CC")

    assert not resolver.can_manage(users["worker"], shift)
    assert not resolver.can_manage(users["client"], shift)


def test_crew_chief_assigned_as_cc_manages(resolver, users, shift, assignment_repo):
    assignment_repo.create(shift_id=SHIFT_ID, user_id=users["chief"].user_id, role_code="CC")

    assert resolver.can_manage(users["chief"], shift)
    assert resolver.is_assigned_to_shift(users["chief"], shift)


def test_crew_chief_working_another_role_may_sign_but_not_manage(resolver, users, shift, assignment_repo):
    assignment_repo.create(shift_id=SHIFT_ID, user_id=users["chief"].user_id, role_code="SH")

    assert not resolver.can_manage(users["chief"], shift)
    assert resolver.is_assigned_to_shift(users["chief"], shift)
    assert resolver.can_sign_off_for_company(users["chief"], shift)


def test_job_scoped_permission_manages_without_assignment(resolver, users, shift, shift_repo, permission_repo):
    permission_repo.add(user_id=users["chief"].user_id, permission_type=PermissionType.JOB, target_id=JOB_ID)

    assert resolver.can_manage(users["chief"], shift)
    assert not resolver.is_assigned_to_shift(users["chief"], shift)
    # sibling shift under the same job is covered, other jobs are not
    assert resolver.can_manage(users["chief"], shift_repo.get_by_id(11))
    assert not resolver.can_manage(users["chief"], shift_repo.get_by_id(12))


@pytest.mark.parametrize(
    "permission_type, target_id, covered",
    [
        (PermissionType.SHIFT, SHIFT_ID, {10}),
        (PermissionType.JOB, JOB_ID, {10, 11, 14}),
        (PermissionType.CLIENT, COMPANY_ID, {10, 11, 12, 14}),
    ],
)
def test_permission_scope_covers_descendants_only(
    resolver, users, shift_repo, permission_repo, permission_type, target_id, covered
):
    permission_repo.add(user_id=users["chief"].user_id, permission_type=permission_type, target_id=target_id)

    managed = {sid for sid in shift_repo.shifts if resolver.can_manage(users["chief"], shift_repo.get_by_id(sid))}

    assert managed == covered


def test_permission_on_other_crew_chief_does_not_leak(resolver, users, shift, permission_repo):
    permission_repo.add(user_id=users["chief2"].user_id, permission_type=PermissionType.SHIFT, target_id=SHIFT_ID)

    assert resolver.can_manage(users["chief2"], shift)
    assert not resolver.can_manage(users["chief"], shift)


def test_company_user_signs_only_for_own_company(resolver, users, shift, shift_repo):
    assert resolver.is_company_user_for(users["client"], shift)
    assert not resolver.is_company_user_for(users["other_client"], shift)
    assert resolver.is_company_user_for(users["other_client"], shift_repo.get_by_id(13))
