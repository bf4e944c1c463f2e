# app/services/password_history.py
"""
Historial de contraseñas para impedir reutilización.

Las entradas son hashes bcrypt (nunca texto plano), de la más reciente a la
más vieja. Las funciones de lista son puras y las usa el servicio de cuentas
sobre el historial persistido; `PasswordHistory` es el store en memoria.
"""
from collections.abc import Sequence

from app.core.security import hash_password, verify_password

DEFAULT_HISTORY_LIMIT = 5
DEFAULT_MAX_HISTORY = 10


def matches_history(candidate: str, entries: Sequence[str], limit: int = DEFAULT_HISTORY_LIMIT) -> bool:
    if not isinstance(candidate, str) or limit <= 0:
        return False
    return any(verify_password(candidate, h) for h in list(entries)[:limit])


def remember(entries: Sequence[str], password_hash: str, max_history: int = DEFAULT_MAX_HISTORY) -> list[str]:
    return [password_hash, *entries][:max(max_history, 0)]


class PasswordHistory:
    """Store de proceso, por id de cuenta. No sobrevive reinicios."""

    def __init__(self):
        self._entries: dict[str, list[str]] = {}

    def entries(self, account_id: str) -> list[str]:
        return list(self._entries.get(account_id, []))

    def record(self, account_id: str, password: str, max_history: int = DEFAULT_MAX_HISTORY) -> None:
        self._entries[account_id] = remember(self.entries(account_id), hash_password(password), max_history)

    def is_reusable(self, account_id: str, candidate: str, history_limit: int = DEFAULT_HISTORY_LIMIT) -> bool:
        return not matches_history(candidate, self._entries.get(account_id, []), history_limit)

    def forget(self, account_id: str) -> None:
        self._entries.pop(account_id, None)
