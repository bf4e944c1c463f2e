# app/services/credential_store.py
"""
Persistencia del estado de credenciales de una cuenta (secreto 2FA, códigos,
hash de contraseña e historial). El servicio de cuentas sólo conoce el
protocolo `CredentialStore`; los motores nunca tocan la base.
"""
import copy
from dataclasses import dataclass, field
from typing import Protocol

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user import User, RoleEnum
from app.models.password_history import PasswordHistory


@dataclass
class CredentialState:
    account_id: str
    email: str
    role: RoleEnum = RoleEnum.user
    hashed_password: str = ""
    secret: str | None = None
    enabled: bool = False
    backup_codes: list[str] = field(default_factory=list)
    recovery_codes: list[str] = field(default_factory=list)
    password_history: list[str] = field(default_factory=list)


class CredentialStore(Protocol):
    async def load(self, account_id: str) -> CredentialState | None: ...

    async def save(self, state: CredentialState) -> None: ...


class InMemoryCredentialStore:
    def __init__(self, *states: CredentialState):
        self._states: dict[str, CredentialState] = {}
        for state in states:
            self._states[state.account_id] = copy.deepcopy(state)

    async def load(self, account_id: str) -> CredentialState | None:
        state = self._states.get(account_id)
        return copy.deepcopy(state) if state else None

    async def save(self, state: CredentialState) -> None:
        self._states[state.account_id] = copy.deepcopy(state)


class SqlCredentialStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _get_user(self, account_id: str) -> User | None:
        res = await self.db.execute(select(User).where(User.id == account_id))
        return res.scalar_one_or_none()

    async def load(self, account_id: str) -> CredentialState | None:
        user = await self._get_user(account_id)
        if not user:
            return None
        res = await self.db.execute(
            select(PasswordHistory.password_hash)
            .where(PasswordHistory.user_id == account_id)
            .order_by(PasswordHistory.position)
        )
        return CredentialState(
            account_id=user.id,
            email=user.email,
            role=user.role,
            hashed_password=user.hashed_password,
            secret=user.twofa_secret,
            enabled=bool(user.is_2fa_enabled),
            backup_codes=list(user.backup_codes or []),
            recovery_codes=list(user.recovery_codes or []),
            password_history=list(res.scalars().all()),
        )

    async def save(self, state: CredentialState) -> None:
        user = await self._get_user(state.account_id)
        if not user:
            raise LookupError(state.account_id)

        user.hashed_password = state.hashed_password
        user.twofa_secret = state.secret
        user.is_2fa_enabled = state.enabled
        # listas nuevas para que el JSON se marque como modificado
        user.backup_codes = list(state.backup_codes)
        user.recovery_codes = list(state.recovery_codes)

        await self.db.execute(delete(PasswordHistory).where(PasswordHistory.user_id == state.account_id))
        self.db.add_all([
            PasswordHistory(user_id=state.account_id, position=i, password_hash=h)
            for i, h in enumerate(state.password_history)
        ])
        await self.db.commit()
