"""Tests de la política de contraseñas: fuerza, tiers por rol y sugerencias."""

from __future__ import annotations

import pytest

from app.core.security import hash_password
from app.models.user import RoleEnum
from app.services import password_policy as pp


def test_short_password_is_weak():
    res = pp.validate_strength("short")
    assert not res.is_valid
    assert res.strength == "weak"
    assert "Password must be at least 8 characters long" in res.errors
    assert "Password must contain at least one uppercase letter" in res.errors
    assert "Password must contain at least one number" in res.errors
    assert "Password must contain at least one special character" in res.errors
    assert "Password must contain at least one lowercase letter" not in res.errors


def test_strong_password():
    res = pp.validate_strength("Str0ng!Passw0rd")
    assert res.is_valid
    assert res.errors == []
    assert res.strength == "strong"


def test_medium_password():
    res = pp.validate_strength("str0ng!passw0rd")
    assert not res.is_valid
    assert res.errors == ["Password must contain at least one uppercase letter"]
    assert res.strength == "medium"


@pytest.mark.parametrize("weak", ["MyPassword1!", "Abc123456!", "Qwerty#2024", "LetMeIn!99x"])
def test_weak_patterns_case_insensitive(weak):
    res = pp.validate_strength(weak)
    assert "Password contains common weak patterns" in res.errors


def test_max_length():
    res = pp.validate_strength("Aa1!" * 33)
    assert "Password must be less than 128 characters" in res.errors


@pytest.mark.parametrize("value", [None, 12345678, b"Str0ng!Passw0rd"])
def test_non_string_input(value):
    res = pp.validate_strength(value)
    assert not res.is_valid
    assert res.errors == ["Password must be a string"]


def test_every_violation_is_listed():
    res = pp.validate_strength("")
    assert len(res.errors) == 5
    assert res.strength == "weak"


# --- tiers ---

def test_user_policy_allows_strong_password():
    decision = pp.apply_policy("user", "Str0ng!Passw0rd")
    assert decision.allowed
    assert decision.reason is None
    assert decision.strength == "strong"


def test_admin_rejects_administrator():
    decision = pp.apply_policy("admin", "Administrator123!")
    assert not decision.allowed
    assert "Password contains common weak patterns" in decision.errors


def test_admin_custom_rule_rejects_root():
    decision = pp.apply_policy("admin", "Secure!Root#2024x")
    assert not decision.allowed
    assert decision.reason == "Password cannot contain common admin patterns"


def test_admin_min_length():
    decision = pp.apply_policy("admin", "Sh0rt!Pw")
    assert not decision.allowed
    assert "Password must be at least 12 characters long" in decision.errors


def test_super_admin_requires_two_specials():
    decision = pp.apply_policy("super_admin", "Vq7mZt2pLx9wKr4!")
    assert not decision.allowed
    assert decision.reason == "Password must contain at least 2 special characters"
    assert pp.apply_policy("super_admin", "Vq7mZt2pLx9wKr4!#").allowed


def test_super_admin_blocks_master():
    decision = pp.apply_policy("superAdmin", "MasterKey!2024#xyz")
    assert not decision.allowed
    assert decision.reason == "Password cannot contain common patterns"


def test_custom_rules_short_circuit():
    # rompe las dos reglas de super_admin: sólo se informa la primera
    decision = pp.apply_policy("super_admin", "MasterOfPuppets99!")
    assert decision.errors == ["Password cannot contain common patterns"]


def test_history_rejects_recent_password():
    history = [hash_password("Other!Passw0rd1"), hash_password("Str0ng!Passw0rd")]
    decision = pp.apply_policy("user", "Str0ng!Passw0rd", history=history)
    assert not decision.allowed
    assert decision.reason == "Password cannot be one of your last 5 passwords"
    assert pp.apply_policy("user", "Fresh!Passw0rd9", history=history).allowed


def test_history_outside_window_is_allowed():
    history = [hash_password(f"Old!Passw0rd{i}") for i in range(5)] + [hash_password("Str0ng!Passw0rd")]
    assert pp.apply_policy("user", "Str0ng!Passw0rd", history=history).allowed


def test_unknown_policy():
    decision = pp.apply_policy("guest", "Str0ng!Passw0rd")
    assert not decision.allowed
    assert "Unknown password policy" in decision.reason


def test_policy_for_role():
    assert pp.policy_for_role(RoleEnum.user).name == "user"
    assert pp.policy_for_role(RoleEnum.admin).min_length == 12
    assert pp.policy_for_role(RoleEnum.super_admin).history_count == 15
    assert pp.policy_for_role("superAdmin").name == "super_admin"
    assert pp.policy_for_role("unknown").name == "user"


# --- sugerencias ---

def test_suggestions_contain_every_class():
    suggestions = pp.suggest_passwords(length=16, count=5)
    assert len(suggestions) == 5
    for s in suggestions:
        assert len(s.password) == 16
        assert any(c.islower() for c in s.password)
        assert any(c.isupper() for c in s.password)
        assert any(c.isdigit() for c in s.password)
        assert any(c in pp.SUGGESTION_SPECIALS for c in s.password)
        assert s.strength == pp.validate_strength(s.password).strength


def test_suggestions_defaults():
    suggestions = pp.suggest_passwords()
    assert len(suggestions) == 3
    assert all(len(s.password) == 12 for s in suggestions)
    assert len({s.password for s in suggestions}) == 3


def test_generate_password_too_short():
    with pytest.raises(ValueError):
        pp.generate_password(3)
