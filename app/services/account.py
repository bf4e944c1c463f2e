# app/services/account.py
"""
Servicio de cuentas: orquesta el motor 2FA y la política de contraseñas
sobre un `CredentialStore`.

Estados de 2FA por cuenta:
    NOT_CONFIGURED -> PENDING_SETUP (secreto generado, sin confirmar)
    PENDING_SETUP  -> ENABLED       (un token válido; se emiten códigos)
    ENABLED        -> NOT_CONFIGURED (token o código de respaldo, nunca sólo contraseña)
"""
import logging
from dataclasses import dataclass

from app.core.config import settings
from app.core.errors import (
    AccountNotFound, PolicyViolation, TooManyAttempts, TwoFactorStateError, ValidationError,
    VerificationFailure,
)
from app.core.security import hash_password, verify_password
from app.services import two_factor
from app.services.attempts import AttemptLimiter
from app.services.credential_store import CredentialState, CredentialStore
from app.services.password_history import remember
from app.services.password_policy import apply_policy, policy_for_role

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SetupData:
    secret: str
    provisioning_uri: str
    manual_entry_key: str
    qr_code: str
    time_remaining: int


@dataclass(frozen=True)
class EnabledData:
    backup_codes: list[str]
    recovery_codes: list[str]


@dataclass(frozen=True)
class TwoFactorStatus:
    enabled: bool
    configured: bool
    pending_setup: bool
    backup_codes_remaining: int
    recovery_codes_remaining: int
    time_remaining: int


@dataclass(frozen=True)
class LoginCheck:
    method: str   # "totp" | "backup_code" | "recovery_code"
    codes_remaining: int | None = None


class AccountService:
    def __init__(self, store: CredentialStore, limiter: AttemptLimiter | None = None,
                 issuer: str | None = None, window: int | None = None):
        self.store = store
        self.limiter = limiter or AttemptLimiter()
        self.issuer = issuer or settings.TWOFA_ISSUER
        self.window = settings.TOTP_WINDOW if window is None else window

    # ---------- helpers ----------
    async def _load(self, account_id: str) -> CredentialState:
        state = await self.store.load(account_id)
        if state is None:
            raise AccountNotFound("Usuario no encontrado")
        return state

    @staticmethod
    def _token(token) -> str:
        # input mal formado no cuenta como intento fallido
        if not isinstance(token, str) or not token.strip():
            raise ValidationError("Se requiere un token 2FA o un código")
        return token.strip()

    def _require_enabled(self, state: CredentialState) -> None:
        if not two_factor.is_configured(state.enabled, state.secret):
            raise TwoFactorStateError("2FA no está habilitado para esta cuenta")

    def _guard(self, key: str) -> None:
        if self.limiter.is_blocked(key):
            logger.warning("2FA bloqueado por intentos fallidos key=%s", key)
            raise TooManyAttempts("Demasiados intentos de 2FA, probá más tarde",
                                  retry_after=self.limiter.retry_after(key))

    def _failed(self, key: str, action: str, detail: str) -> VerificationFailure:
        left = self.limiter.hit(key)
        logger.info("2FA %s fallido key=%s intentos_restantes=%s", action, key, left)
        return VerificationFailure(detail)

    def _check_totp(self, state: CredentialState, token: str) -> bool:
        return bool(state.secret) and two_factor.verify_token(token, state.secret, window=self.window)

    def _check_any(self, state: CredentialState, token: str) -> LoginCheck | None:
        """TOTP, después código de respaldo y por último de recuperación. Consume el código."""
        if self._check_totp(state, token):
            return LoginCheck(method="totp")
        backup = two_factor.verify_backup_code(token, state.backup_codes)
        if backup.valid:
            state.backup_codes = backup.remaining_codes
            return LoginCheck(method="backup_code", codes_remaining=backup.remaining)
        recovery = two_factor.verify_recovery_code(token, state.recovery_codes)
        if recovery.valid:
            state.recovery_codes = recovery.remaining_codes
            return LoginCheck(method="recovery_code", codes_remaining=recovery.remaining)
        return None

    # ---------- 2FA ----------
    async def status(self, account_id: str) -> TwoFactorStatus:
        state = await self._load(account_id)
        return TwoFactorStatus(
            enabled=state.enabled,
            configured=two_factor.is_configured(state.enabled, state.secret),
            pending_setup=bool(state.secret) and not state.enabled,
            backup_codes_remaining=len(state.backup_codes),
            recovery_codes_remaining=len(state.recovery_codes),
            time_remaining=two_factor.seconds_until_next_window(),
        )

    async def setup_request(self, account_id: str) -> SetupData:
        state = await self._load(account_id)
        if state.enabled:
            raise TwoFactorStateError("2FA ya está habilitado para esta cuenta")

        # si ya había un secreto pendiente lo reemplazamos hasta que confirme
        bundle = two_factor.generate_secret(state.email, issuer=self.issuer)
        state.secret = bundle.secret
        state.enabled = False
        await self.store.save(state)
        logger.info("2FA setup iniciado account=%s", account_id)

        return SetupData(
            secret=bundle.secret,
            provisioning_uri=bundle.provisioning_uri,
            manual_entry_key=bundle.manual_entry_key,
            qr_code=two_factor.render_provisioning_qr(bundle.provisioning_uri),
            time_remaining=two_factor.seconds_until_next_window(),
        )

    async def confirm_setup(self, account_id: str, token: str) -> EnabledData:
        token = self._token(token)
        state = await self._load(account_id)
        if state.enabled:
            raise TwoFactorStateError("2FA ya está habilitado")
        if not state.secret:
            raise TwoFactorStateError("No hay secreto 2FA configurado. Ejecutá /2fa/setup")
        self._guard(account_id)
        if not self._check_totp(state, token):
            raise self._failed(account_id, "confirm", "Token de verificación inválido")

        self.limiter.reset(account_id)
        state.enabled = True
        state.backup_codes = two_factor.generate_backup_codes(settings.BACKUP_CODES_COUNT)
        state.recovery_codes = two_factor.generate_recovery_codes(settings.RECOVERY_CODES_COUNT)
        await self.store.save(state)
        logger.info("2FA habilitado account=%s", account_id)
        return EnabledData(backup_codes=list(state.backup_codes), recovery_codes=list(state.recovery_codes))

    async def disable(self, account_id: str, token: str) -> None:
        token = self._token(token)
        state = await self._load(account_id)
        self._require_enabled(state)
        self._guard(account_id)
        if self._check_any(state, token) is None:
            raise self._failed(account_id, "disable", "Token o código de respaldo inválido")

        self.limiter.reset(account_id)
        state.enabled = False
        state.secret = None
        state.backup_codes = []
        state.recovery_codes = []
        await self.store.save(state)
        logger.info("2FA deshabilitado account=%s", account_id)

    async def verify_login(self, account_id: str, token: str, attempt_key: str | None = None) -> LoginCheck:
        """
        `attempt_key` separa el contador del limitador. Los callers que no
        pasaron por la contraseña usan una clave propia (cuenta + IP) para no
        poder bloquear el login del dueño de la cuenta.
        """
        token = self._token(token)
        key = attempt_key or account_id
        state = await self._load(account_id)
        self._require_enabled(state)
        self._guard(key)
        check = self._check_any(state, token)
        if check is None:
            raise self._failed(key, "login", "Token 2FA o código de respaldo inválido")

        self.limiter.reset(key)
        if check.method != "totp":
            await self.store.save(state)
            logger.info("Login con %s account=%s restantes=%s", check.method, account_id, check.codes_remaining)
        return check

    async def backup_codes(self, account_id: str) -> list[str]:
        state = await self._load(account_id)
        self._require_enabled(state)
        return list(state.backup_codes)

    async def regenerate_backup_codes(self, account_id: str, token: str) -> list[str]:
        token = self._token(token)
        state = await self._load(account_id)
        self._require_enabled(state)
        self._guard(account_id)
        if not self._check_totp(state, token):
            raise self._failed(account_id, "regenerate_backup", "Token de verificación inválido")

        self.limiter.reset(account_id)
        state.backup_codes = two_factor.generate_backup_codes(settings.BACKUP_CODES_COUNT)
        await self.store.save(state)
        logger.info("Códigos de respaldo regenerados account=%s", account_id)
        return list(state.backup_codes)

    async def regenerate_recovery_codes(self, account_id: str, token: str) -> list[str]:
        token = self._token(token)
        state = await self._load(account_id)
        self._require_enabled(state)
        self._guard(account_id)
        if not self._check_totp(state, token):
            raise self._failed(account_id, "regenerate_recovery", "Token de verificación inválido")

        self.limiter.reset(account_id)
        state.recovery_codes = two_factor.generate_recovery_codes(settings.RECOVERY_CODES_COUNT)
        await self.store.save(state)
        logger.info("Códigos de recuperación regenerados account=%s", account_id)
        return list(state.recovery_codes)

    # ---------- contraseñas ----------
    async def change_password(self, account_id: str, candidate: str, role=None,
                              current_password: str | None = None) -> None:
        state = await self._load(account_id)
        if current_password is not None and not verify_password(current_password, state.hashed_password):
            raise VerificationFailure("La contraseña actual es incorrecta")

        policy = policy_for_role(role or state.role)
        # el hash vigente cuenta como la entrada más reciente del historial
        history = state.password_history
        if state.hashed_password and state.hashed_password not in history:
            history = [state.hashed_password, *history]

        decision = apply_policy(policy.name, candidate, history=history)
        if not decision.allowed:
            logger.warning("Cambio de contraseña rechazado account=%s policy=%s", account_id, policy.name)
            raise PolicyViolation(decision.reason or "Password rejected", errors=decision.errors)

        new_hash = hash_password(candidate)
        state.hashed_password = new_hash
        state.password_history = remember(history, new_hash, policy.max_history)
        await self.store.save(state)
        logger.info("Contraseña cambiada account=%s", account_id)


def register_password(password: str, role) -> tuple[str, list[str]]:
    """
    Valida la contraseña inicial de una cuenta nueva con la política de su
    rol. Devuelve (hash, historial inicial) o levanta PolicyViolation.
    """
    policy = policy_for_role(role)
    decision = apply_policy(policy.name, password)
    if not decision.allowed:
        raise PolicyViolation(decision.reason or "Password rejected", errors=decision.errors)
    hashed = hash_password(password)
    return hashed, [hashed]
