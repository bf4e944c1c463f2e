"""
Derivación TOTP sin pyotp (RFC 4226 / RFC 6238) sobre `hmac` + `hashlib`.

Se usa cuando TOTP_ENGINE=builtin y para calcular códigos "por fuera" en los
tests. Mismos parámetros que las apps autenticadoras: SHA-1, 6 dígitos, 30 s.
"""
import base64
import hashlib
import hmac
import re
import time

ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ234567"
TIME_STEP = 30
DIGITS = 6

_NOT_B32 = re.compile(r"[^A-Z2-7]")


def b32encode(data: bytes) -> str:
    """Base32 sin padding (así lo muestran las apps y el otpauth://)."""
    return base64.b32encode(data).decode("ascii").rstrip("=")


def b32decode(value: str) -> bytes:
    """
    Decodifica base32 con o sin padding. Ignora espacios, guiones y cualquier
    caracter fuera del alfabeto (claves tipeadas a mano). Levanta ValueError
    si lo que queda no tiene un largo base32 válido.
    """
    clean = _NOT_B32.sub("", value.upper())
    if not clean:
        raise ValueError("empty base32 value")
    return base64.b32decode(clean + "=" * (-len(clean) % 8))


def time_counter(for_time: float | None = None) -> int:
    now = time.time() if for_time is None else for_time
    return int(now // TIME_STEP)


def hotp(key: bytes, counter: int, digits: int = DIGITS) -> str:
    if counter < 0:
        raise ValueError("counter must be >= 0")
    digest = hmac.new(key, counter.to_bytes(8, "big"), hashlib.sha1).digest()
    # dynamic truncation
    offset = digest[-1] & 0x0F
    code = int.from_bytes(digest[offset:offset + 4], "big") & 0x7FFFFFFF
    return str(code % 10 ** digits).zfill(digits)


def totp_at(secret: str, for_time: float | None = None, offset: int = 0) -> str:
    return hotp(b32decode(secret), time_counter(for_time) + offset)


def verify(token: str, secret: str, window: int = 1, for_time: float | None = None) -> bool:
    key = b32decode(secret)
    counter = time_counter(for_time)
    matched = False
    for step in range(-window, window + 1):
        if counter + step < 0:
            continue
        # sin cortar al primer match: mismo tiempo para cualquier token
        if hmac.compare_digest(hotp(key, counter + step), token):
            matched = True
    return matched
