# app/services/password_policy.py
"""
Política de contraseñas: fuerza, historial y reglas extra por rol
(user / admin / super_admin). Funciones puras, sin I/O.
"""
import re
import secrets
import string
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from app.services.password_history import matches_history

SPECIAL_CHARS = "!@#$%^&*()_+-=[]{};':\"\\|,.<>/?"
WEAK_PATTERNS = ("password", "123456", "admin", "qwerty", "letmein")

_SPECIAL_RE = re.compile("[" + re.escape(SPECIAL_CHARS) + "]")

Rule = Callable[[str], str | None]


@dataclass(frozen=True)
class StrengthResult:
    is_valid: bool
    errors: list[str]
    strength: str


def _strength_label(error_count: int) -> str:
    if error_count == 0:
        return "strong"
    if error_count <= 2:
        return "medium"
    return "weak"


def validate_strength(
    password,
    min_length: int = 8,
    max_length: int = 128,
    require_lowercase: bool = True,
    require_uppercase: bool = True,
    require_numbers: bool = True,
    require_special_chars: bool = True,
) -> StrengthResult:
    if not isinstance(password, str):
        return StrengthResult(is_valid=False, errors=["Password must be a string"], strength="weak")

    errors = []
    if len(password) < min_length:
        errors.append(f"Password must be at least {min_length} characters long")
    if len(password) > max_length:
        errors.append(f"Password must be less than {max_length} characters")
    if require_lowercase and not re.search(r"[a-z]", password):
        errors.append("Password must contain at least one lowercase letter")
    if require_uppercase and not re.search(r"[A-Z]", password):
        errors.append("Password must contain at least one uppercase letter")
    if require_numbers and not re.search(r"\d", password):
        errors.append("Password must contain at least one number")
    if require_special_chars and not _SPECIAL_RE.search(password):
        errors.append("Password must contain at least one special character")

    lowered = password.lower()
    if any(p in lowered for p in WEAK_PATTERNS):
        errors.append("Password contains common weak patterns")

    return StrengthResult(is_valid=not errors, errors=errors, strength=_strength_label(len(errors)))


# --- reglas custom ---

def forbid_patterns(patterns: Sequence[str], message: str) -> Rule:
    def _rule(password: str) -> str | None:
        lowered = password.lower()
        return message if any(p in lowered for p in patterns) else None
    return _rule


def min_special_chars(count: int, message: str) -> Rule:
    def _rule(password: str) -> str | None:
        return None if len(_SPECIAL_RE.findall(password)) >= count else message
    return _rule


@dataclass(frozen=True)
class PasswordPolicy:
    name: str
    min_length: int = 8
    max_length: int = 128
    require_lowercase: bool = True
    require_uppercase: bool = True
    require_numbers: bool = True
    require_special_chars: bool = True
    check_history: bool = True
    history_count: int = 5
    max_history: int = 10
    custom_rules: tuple[Rule, ...] = ()

    def strength(self, password) -> StrengthResult:
        return validate_strength(
            password,
            min_length=self.min_length,
            max_length=self.max_length,
            require_lowercase=self.require_lowercase,
            require_uppercase=self.require_uppercase,
            require_numbers=self.require_numbers,
            require_special_chars=self.require_special_chars,
        )


POLICIES: dict[str, PasswordPolicy] = {
    "user": PasswordPolicy(name="user", min_length=8, history_count=5, max_history=10),
    "admin": PasswordPolicy(
        name="admin",
        min_length=12,
        history_count=10,
        max_history=10,
        custom_rules=(
            forbid_patterns(("admin", "password", "root", "administrator"),
                            "Password cannot contain common admin patterns"),
        ),
    ),
    "super_admin": PasswordPolicy(
        name="super_admin",
        min_length=16,
        history_count=15,
        max_history=15,
        custom_rules=(
            forbid_patterns(("admin", "password", "root", "administrator", "super", "master"),
                            "Password cannot contain common patterns"),
            min_special_chars(2, "Password must contain at least 2 special characters"),
        ),
    ),
}

# nombres que manda el panel viejo
ALIASES = {"superAdmin": "super_admin", "superadmin": "super_admin"}


def get_policy(name: str) -> PasswordPolicy | None:
    return POLICIES.get(ALIASES.get(name, name))


def policy_for_role(role) -> PasswordPolicy:
    value = getattr(role, "value", role)
    return get_policy(str(value)) or POLICIES["user"]


@dataclass(frozen=True)
class PolicyDecision:
    allowed: bool
    reason: str | None = None
    errors: list[str] = field(default_factory=list)
    strength: str | None = None


def apply_policy(policy_name: str, password, history: Sequence[str] | None = None) -> PolicyDecision:
    """
    Orden: fuerza (se informan todos los errores), historial (sólo si se pasa
    el historial de la cuenta) y reglas custom (corta en la primera que falla).
    """
    policy = get_policy(policy_name)
    if policy is None:
        return PolicyDecision(allowed=False, reason=f"Unknown password policy: {policy_name}")

    result = policy.strength(password)
    if not result.is_valid:
        return PolicyDecision(
            allowed=False,
            reason="Password does not meet security requirements",
            errors=result.errors,
            strength=result.strength,
        )

    if policy.check_history and history is not None:
        if matches_history(password, history, policy.history_count):
            reason = f"Password cannot be one of your last {policy.history_count} passwords"
            return PolicyDecision(allowed=False, reason=reason, errors=[reason], strength=result.strength)

    for rule in policy.custom_rules:
        message = rule(password)
        if message:
            return PolicyDecision(allowed=False, reason=message, errors=[message], strength=result.strength)

    return PolicyDecision(allowed=True, strength=result.strength)


# --- sugerencias ---

SUGGESTION_SPECIALS = "!@#$%^&*()_+-=[]{}|;:,.<>?"
_CLASSES = (string.ascii_lowercase, string.ascii_uppercase, string.digits, SUGGESTION_SPECIALS)
_ALL_CHARS = "".join(_CLASSES)
_rng = secrets.SystemRandom()


@dataclass(frozen=True)
class Suggestion:
    password: str
    strength: str


def generate_password(length: int = 12) -> str:
    if length < len(_CLASSES):
        raise ValueError(f"length must be >= {len(_CLASSES)}")
    chars = [secrets.choice(c) for c in _CLASSES]
    chars += [secrets.choice(_ALL_CHARS) for _ in range(length - len(_CLASSES))]
    _rng.shuffle(chars)
    return "".join(chars)


def suggest_passwords(length: int = 12, count: int = 3) -> list[Suggestion]:
    suggestions = []
    for _ in range(count):
        pwd = generate_password(length)
        suggestions.append(Suggestion(password=pwd, strength=validate_strength(pwd).strength))
    return suggestions
