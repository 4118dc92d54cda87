import threading

import pytest

from src.staffing_engine.staffing_engine.core.exceptions import DuplicateRoleCode, RoleNotFound, ValidationError
from src.staffing_engine.staffing_engine.roles.catalog import BUILT_IN_CODES, RoleCatalog


def test_built_in_roles_resolve_in_display_order():
    catalog = RoleCatalog()

    assert [r.code for r in catalog.list_in_order()] == ["CC", "RG", "RFO", "FO", "SH", "GL"]
    assert catalog.resolve("sh").name == "Stage Hand"
    assert catalog.resolve("CC").built_in is True


def test_unknown_code_is_not_found():
    with pytest.raises(RoleNotFound):
        RoleCatalog().resolve("XX")


def test_register_custom_role_appends_after_built_ins():
    catalog = RoleCatalog()

    role = catalog.register("AV", "Audio Visual Tech", {"color": "orange", "certified": True})

    assert role.color == "orange"
    assert role.metadata == {"certified": True}
    assert catalog.list_in_order()[-1].code == "AV"
    assert catalog.resolve("AV") == role


@pytest.mark.parametrize("code", ["A", "ABCDE", "av", "A1", ""])
def test_register_rejects_malformed_codes(code):
    with pytest.raises(ValidationError):
        RoleCatalog().register(code, "Whatever")


def test_register_duplicate_or_built_in_code_fails():
    catalog = RoleCatalog()
    catalog.register("AV", "Audio Visual Tech")

    with pytest.raises(DuplicateRoleCode):
        catalog.register("AV", "Another")
    with pytest.raises(DuplicateRoleCode):
        catalog.register("SH", "Redefined Stage Hand")
    assert catalog.resolve("SH").name == "Stage Hand"


def test_built_in_roles_cannot_be_removed():
    catalog = RoleCatalog()
    catalog.register("AV", "Audio Visual Tech")

    with pytest.raises(ValidationError):
        catalog.remove("CC")

    catalog.remove("AV")
    assert not catalog.contains("AV")
    assert all(catalog.contains(code) for code in BUILT_IN_CODES)


def test_concurrent_registration_of_same_code_has_one_winner():
    catalog = RoleCatalog()
    outcomes = []
    barrier = threading.Barrier(8)

    def register():
        barrier.wait()
        try:
            catalog.register("DJ", "Disc Jockey")
            outcomes.append("ok")
        except DuplicateRoleCode:
            outcomes.append("dup")

    threads = [threading.Thread(target=register) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert outcomes.count("ok") == 1
    assert outcomes.count("dup") == 7
