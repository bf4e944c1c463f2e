# app/services/two_factor.py
"""
Motor de 2FA (TOTP): secreto + otpauth://, QR, verificación de tokens y
códigos de respaldo / recuperación de un solo uso.

No guarda estado: el secreto y las listas de códigos viven en la cuenta y las
persiste quien llama (ver app.services.account).
"""
import base64
import hmac
import logging
import secrets
import time
from dataclasses import dataclass, field
from io import BytesIO
from urllib.parse import quote

import pyotp
import qrcode

from app.core.config import settings
from app.core.errors import GenerationError
from app.services import otp_fallback

logger = logging.getLogger(__name__)

SECRET_BYTES = 20
TIME_STEP = otp_fallback.TIME_STEP
TOKEN_DIGITS = otp_fallback.DIGITS


@dataclass(frozen=True)
class SecretBundle:
    secret: str
    provisioning_uri: str
    manual_entry_key: str


@dataclass(frozen=True)
class CodeCheck:
    valid: bool
    remaining_codes: list[str] = field(default_factory=list)
    error: str | None = None

    @property
    def remaining(self) -> int:
        return len(self.remaining_codes)


# --- secreto / provisioning ---

def provisioning_uri(secret: str, label: str, issuer: str | None = None) -> str:
    issuer = issuer or settings.TWOFA_ISSUER
    return (f"otpauth://totp/{quote(issuer)}%20({quote(label, safe='')})"
            f"?secret={secret}&issuer={quote(issuer)}")


def generate_secret(identity_label: str, issuer: str | None = None) -> SecretBundle:
    try:
        raw = secrets.token_bytes(SECRET_BYTES)
    except (OSError, NotImplementedError) as exc:
        logger.error("Fuente de entropía no disponible: %s", type(exc).__name__)
        raise GenerationError("No se pudo generar el secreto 2FA") from exc
    if len(raw) != SECRET_BYTES or not any(raw):
        raise GenerationError("No se pudo generar el secreto 2FA")

    secret = otp_fallback.b32encode(raw)
    return SecretBundle(
        secret=secret,
        provisioning_uri=provisioning_uri(secret, identity_label, issuer),
        manual_entry_key=secret,
    )


def render_provisioning_qr(uri: str) -> str:
    """QR del otpauth:// como data URI PNG (~200px). Si falla, data URI de texto."""
    try:
        qr = qrcode.QRCode(error_correction=qrcode.constants.ERROR_CORRECT_M, box_size=6, border=2)
        qr.add_data(uri)
        qr.make(fit=True)
        img = qr.make_image(fill_color="black", back_color="white")
        buf = BytesIO()
        img.save(buf, "PNG")
        return "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode("ascii")
    except Exception as exc:
        # nunca loguear la URI: lleva el secreto
        logger.warning("No se pudo renderizar el QR (%s), se devuelve fallback de texto",
                       type(exc).__name__)
        text = f"QR Code for: {uri}".encode()
        return "data:text/plain;base64," + base64.b64encode(text).decode("ascii")


# --- tokens ---

def _looks_like_token(token) -> bool:
    return isinstance(token, str) and len(token) == TOKEN_DIGITS and token.isdigit()


def verify_token(token: str, secret: str, window: int | None = None,
                 for_time: float | None = None, engine: str | None = None) -> bool:
    if window is None:
        window = settings.TOTP_WINDOW
    if not _looks_like_token(token) or not secret or window < 0:
        return False
    engine = engine or settings.TOTP_ENGINE
    try:
        if engine == "builtin":
            return otp_fallback.verify(token, secret, window=window, for_time=for_time)
        return pyotp.TOTP(secret).verify(token, for_time=for_time, valid_window=window)
    except Exception as exc:
        logger.debug("Secreto 2FA inválido (%s)", type(exc).__name__)
        return False


def seconds_until_next_window(now: float | None = None) -> int:
    now = time.time() if now is None else now
    return TIME_STEP - int(now) % TIME_STEP


def is_configured(enabled: bool, secret: str | None) -> bool:
    return bool(enabled and secret)


def validate_setup(secret: str | None, token: str | None) -> list[str]:
    errors = []
    if not secret:
        errors.append("2FA secret is required")
    if not token:
        errors.append("Verification token is required")
    if secret and token and not verify_token(token, secret):
        errors.append("Invalid verification token")
    return errors


# --- códigos de respaldo / recuperación ---

def generate_backup_codes(count: int = 10) -> list[str]:
    return [secrets.token_hex(4).upper() for _ in range(count)]


def generate_recovery_codes(count: int = 8) -> list[str]:
    return ["-".join(secrets.token_hex(3).upper() for _ in range(3)) for _ in range(count)]


def _consume(submitted, codes, kind: str) -> CodeCheck:
    if not isinstance(codes, list):
        return CodeCheck(valid=False, error="invalid_format")
    if not isinstance(submitted, str) or not submitted.strip():
        return CodeCheck(valid=False, remaining_codes=list(codes), error=f"invalid_{kind}")

    normalized = submitted.strip().upper().encode()
    index = -1
    # recorremos toda la lista: el tiempo no depende de dónde está el código
    for i, code in enumerate(codes):
        if isinstance(code, str) and hmac.compare_digest(code.encode(), normalized) and index < 0:
            index = i
    if index < 0:
        return CodeCheck(valid=False, remaining_codes=list(codes), error=f"invalid_{kind}")
    return CodeCheck(valid=True, remaining_codes=codes[:index] + codes[index + 1:])


def verify_backup_code(submitted: str, codes: list[str]) -> CodeCheck:
    return _consume(submitted, codes, "backup_code")


def verify_recovery_code(submitted: str, codes: list[str]) -> CodeCheck:
    return _consume(submitted, codes, "recovery_code")
