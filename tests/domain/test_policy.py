from __future__ import annotations

from oacompass.config.policies import PolicyTable
from oacompass.domain.policy import assign_policy, derive_policy


def test_derive_policy_prefers_symbolic_key() -> None:
    policy = derive_policy(PolicyTable(), key="emeritus", code="61")

    assert policy is not None
    assert policy.key == "emeritus"
    assert policy.permission_sets == ("iast#mylibrarycardil",)


def test_derive_policy_translates_group_code() -> None:
    policy = derive_policy(PolicyTable(), code="61")

    assert policy is not None
    assert policy.key == "free_vc"
    assert policy.groups == ("free_vc",)
    assert policy.permission_sets == ("iast#mylibrarycard",)


def test_derive_policy_unknown_key_falls_back_to_code() -> None:
    policy = derive_policy(PolicyTable(), key="nonexistent", code=" 05 ")

    assert policy is not None
    assert policy.key == "retiree"


def test_derive_policy_returns_none_without_match() -> None:
    assert derive_policy(PolicyTable()) is None
    assert derive_policy(PolicyTable(), code="99") is None


def test_assign_policy_keeps_caller_lists() -> None:
    assignment = assign_policy(
        PolicyTable(),
        code="05",
        groups=["custom-group"],
    )

    assert assignment.groups == ("custom-group",)
    assert assignment.permission_sets == ("iast#mylibrarycardil",)
    assert assignment.applied_policy is not None
    assert assignment.to_payload() == {
        "groups": ["custom-group"],
        "permissionSets": ["iast#mylibrarycardil"],
    }


def test_assign_policy_without_policy_is_empty() -> None:
    assignment = assign_policy(PolicyTable(), code="99")

    assert assignment.applied_policy is None
    assert assignment.to_payload() == {}
