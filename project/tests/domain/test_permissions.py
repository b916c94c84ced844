import pytest

from orderflow.utils.permissions import can, capabilities_for


@pytest.mark.parametrize(
    "role, capability",
    [
        ("billing", "orders:create"),
        ("wallet", "orders:verify_payment"),
        ("logistics", "orders:process"),
        ("courier", "orders:deliver"),
        ("wallet", "receipts:create"),
        ("courier", "orders:read"),
    ],
)
def test_each_role_may_do_its_own_step(role, capability):
    assert can(role, capability)


@pytest.mark.parametrize(
    "role, capability",
    [
        ("billing", "orders:verify_payment"),
        ("courier", "orders:process"),
        ("logistics", "orders:deliver"),
        ("courier", "receipts:create"),
        ("billing", "orders:delete"),
        ("wallet", "users:manage"),
        ("admin", "orders:teleport"),
        ("ghost", "orders:read"),
    ],
)
def test_everything_else_is_denied(role, capability):
    assert not can(role, capability)


def test_admin_holds_every_capability():
    assert "users:manage" in capabilities_for("admin")
    assert capabilities_for("courier") == ["orders:deliver", "orders:read"]
