"""Tests del motor TOTP: secreto, URI, QR, verificación y códigos de un solo uso."""

from __future__ import annotations

import base64
import re

import pyotp
import pytest

from app.core.errors import GenerationError
from app.services import otp_fallback, two_factor

T = 1_700_000_015


@pytest.fixture
def secret():
    return two_factor.generate_secret("a@b.com").secret


# --- secreto / provisioning ---

def test_generate_secret_format():
    bundle = two_factor.generate_secret("a@b.com", issuer="Seen Group")
    assert re.fullmatch(r"[A-Z2-7]{32}", bundle.secret)
    assert bundle.manual_entry_key == bundle.secret
    assert len(otp_fallback.b32decode(bundle.secret)) == two_factor.SECRET_BYTES
    assert bundle.provisioning_uri == (
        f"otpauth://totp/Seen%20Group%20(a%40b.com)?secret={bundle.secret}&issuer=Seen%20Group"
    )


def test_generate_secret_is_random():
    secrets_ = {two_factor.generate_secret("a@b.com").secret for _ in range(10)}
    assert len(secrets_) == 10


def test_generate_secret_entropy_failure(monkeypatch):
    def broken(n):
        raise OSError("no entropy")

    monkeypatch.setattr(two_factor.secrets, "token_bytes", broken)
    with pytest.raises(GenerationError):
        two_factor.generate_secret("a@b.com")


def test_provisioning_uri_is_readable_by_pyotp(secret):
    parsed = pyotp.parse_uri(two_factor.provisioning_uri(secret, "a@b.com", issuer="Seen Group"))
    assert parsed.secret == secret
    assert parsed.issuer == "Seen Group"


def test_render_qr_png():
    uri = two_factor.provisioning_uri("JBSWY3DPEHPK3PXP", "a@b.com")
    data_uri = two_factor.render_provisioning_qr(uri)
    assert data_uri.startswith("data:image/png;base64,")
    png = base64.b64decode(data_uri.split(",", 1)[1])
    assert png[:8] == b"\x89PNG\r\n\x1a\n"


def test_render_qr_text_fallback(monkeypatch, caplog):
    def broken(*args, **kwargs):
        raise RuntimeError("no PIL")

    monkeypatch.setattr(two_factor.qrcode, "QRCode", broken)
    uri = two_factor.provisioning_uri("JBSWY3DPEHPK3PXP", "a@b.com")
    data_uri = two_factor.render_provisioning_qr(uri)
    assert data_uri.startswith("data:text/plain;base64,")
    assert uri in base64.b64decode(data_uri.split(",", 1)[1]).decode()
    assert "JBSWY3DPEHPK3PXP" not in caplog.text


# --- verificación ---

@pytest.mark.parametrize("engine", ["pyotp", "builtin"])
def test_verify_token_window(secret, engine):
    code = otp_fallback.totp_at(secret, for_time=T)
    assert two_factor.verify_token(code, secret, window=1, for_time=T, engine=engine)
    assert two_factor.verify_token(code, secret, window=1, for_time=T + 30, engine=engine)
    assert two_factor.verify_token(code, secret, window=1, for_time=T - 30, engine=engine)
    assert not two_factor.verify_token(code, secret, window=1, for_time=T + 90, engine=engine)
    assert not two_factor.verify_token(code, secret, window=1, for_time=T - 90, engine=engine)


@pytest.mark.parametrize("engine", ["pyotp", "builtin"])
def test_verify_token_current_time(secret, engine):
    assert two_factor.verify_token(otp_fallback.totp_at(secret), secret, engine=engine)


@pytest.mark.parametrize("token", ["12345", "1234567", "abcdef", "", None, 123456])
def test_verify_token_rejects_malformed_token(secret, token):
    assert two_factor.verify_token(token, secret, for_time=T) is False


@pytest.mark.parametrize("engine", ["pyotp", "builtin"])
@pytest.mark.parametrize("bad_secret", ["!!!!", "A", ""])
def test_verify_token_malformed_secret_returns_false(engine, bad_secret):
    assert two_factor.verify_token("123456", bad_secret, engine=engine) is False


def test_pyotp_and_builtin_agree(secret):
    assert pyotp.TOTP(secret).at(T) == otp_fallback.totp_at(secret, for_time=T)


def test_seconds_until_next_window():
    assert two_factor.seconds_until_next_window(now=0) == 30
    assert two_factor.seconds_until_next_window(now=1_700_000_015) == 15
    assert 1 <= two_factor.seconds_until_next_window() <= 30


def test_validate_setup(secret):
    assert two_factor.validate_setup(None, None) == [
        "2FA secret is required", "Verification token is required",
    ]
    assert two_factor.validate_setup(secret, "000000") in ([], ["Invalid verification token"])
    assert two_factor.validate_setup(secret, otp_fallback.totp_at(secret)) == []


def test_is_configured():
    assert two_factor.is_configured(True, "ABC")
    assert not two_factor.is_configured(True, None)
    assert not two_factor.is_configured(False, "ABC")


# --- códigos de respaldo / recuperación ---

def test_generate_backup_codes():
    codes = two_factor.generate_backup_codes(10)
    assert len(codes) == 10
    assert all(re.fullmatch(r"[0-9A-F]{8}", c) for c in codes)


def test_generate_recovery_codes():
    codes = two_factor.generate_recovery_codes()
    assert len(codes) == 8
    assert all(re.fullmatch(r"[0-9A-F]{6}-[0-9A-F]{6}-[0-9A-F]{6}", c) for c in codes)


def test_backup_code_is_single_use():
    codes = two_factor.generate_backup_codes(3)
    first = two_factor.verify_backup_code(codes[1], codes)
    assert first.valid
    assert first.remaining_codes == [codes[0], codes[2]]
    assert first.remaining == 2

    second = two_factor.verify_backup_code(codes[1], first.remaining_codes)
    assert not second.valid
    assert second.error == "invalid_backup_code"
    assert second.remaining_codes == first.remaining_codes


def test_backup_code_normalized_and_caller_list_untouched():
    codes = ["ABCDEF12", "0011AAFF"]
    result = two_factor.verify_backup_code("  abcdef12 ", codes)
    assert result.valid
    assert result.remaining_codes == ["0011AAFF"]
    assert codes == ["ABCDEF12", "0011AAFF"]


def test_backup_code_duplicates_remove_only_one():
    result = two_factor.verify_backup_code("AAAA0000", ["AAAA0000", "AAAA0000"])
    assert result.valid
    assert result.remaining_codes == ["AAAA0000"]


@pytest.mark.parametrize("codes", [None, "ABCDEF12", {"ABCDEF12"}])
def test_backup_code_rejects_non_list(codes):
    result = two_factor.verify_backup_code("ABCDEF12", codes)
    assert not result.valid
    assert result.error == "invalid_format"


def test_recovery_code_independent_pool():
    backup = two_factor.generate_backup_codes(2)
    recovery = two_factor.generate_recovery_codes(2)
    assert not two_factor.verify_recovery_code(backup[0], recovery).valid
    ok = two_factor.verify_recovery_code(recovery[0].lower(), recovery)
    assert ok.valid
    assert ok.remaining_codes == [recovery[1]]
    again = two_factor.verify_recovery_code(recovery[0], ok.remaining_codes)
    assert not again.valid
    assert again.error == "invalid_recovery_code"
