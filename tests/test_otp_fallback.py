"""Tests del codec base32 y la derivación HOTP/TOTP sin pyotp."""

from __future__ import annotations

import os

import pytest

from app.services import otp_fallback

# RFC 4226, apéndice D
RFC_KEY = b"12345678901234567890"
RFC_HOTP = ["755224", "287082", "359152", "969429", "338314"]


@pytest.mark.parametrize("size", [10, 16, 20])
def test_b32_roundtrip(size):
    data = os.urandom(size)
    encoded = otp_fallback.b32encode(data)
    assert "=" not in encoded
    assert otp_fallback.b32decode(encoded) == data


def test_b32decode_ignores_case_spaces_and_padding():
    data = b"seen-group-2fa!"
    encoded = otp_fallback.b32encode(data)
    spaced = " ".join(encoded[i:i + 4] for i in range(0, len(encoded), 4)).lower()
    assert otp_fallback.b32decode(spaced) == data
    assert otp_fallback.b32decode(encoded + "====") == data


def test_b32decode_rejects_garbage():
    with pytest.raises(ValueError):
        otp_fallback.b32decode("!!!")
    with pytest.raises(ValueError):
        otp_fallback.b32decode("A")


@pytest.mark.parametrize("counter,expected", list(enumerate(RFC_HOTP)))
def test_hotp_rfc4226_vectors(counter, expected):
    assert otp_fallback.hotp(RFC_KEY, counter) == expected


def test_totp_rfc6238_vector():
    # T=59 -> contador 1; el valor de 8 dígitos del RFC es 94287082
    secret = otp_fallback.b32encode(RFC_KEY)
    assert otp_fallback.totp_at(secret, for_time=59) == "287082"


def test_hotp_negative_counter():
    with pytest.raises(ValueError):
        otp_fallback.hotp(RFC_KEY, -1)


def test_verify_window():
    secret = otp_fallback.b32encode(os.urandom(20))
    t = 1_700_000_015
    code = otp_fallback.totp_at(secret, for_time=t)
    assert otp_fallback.verify(code, secret, window=1, for_time=t)
    assert otp_fallback.verify(code, secret, window=1, for_time=t + 30)
    assert otp_fallback.verify(code, secret, window=1, for_time=t - 30)
    assert not otp_fallback.verify(code, secret, window=1, for_time=t + 90)
    assert not otp_fallback.verify(code, secret, window=0, for_time=t + 30)


def test_time_counter_aligned_to_epoch():
    assert otp_fallback.time_counter(0) == 0
    assert otp_fallback.time_counter(29.9) == 0
    assert otp_fallback.time_counter(30) == 1
