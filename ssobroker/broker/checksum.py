"""
Keyed SHA-256 checksums and derived identifiers.

The SSO server recomputes every value here independently from the shared
secret, so the functions must stay deterministic: no salt, no nonce.
"""

from __future__ import annotations

import base64
import hashlib
from typing import Protocol

ATTACH_PURPOSE = "attach"
SESSION_PURPOSE = "session"

_BASE36_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"


def checksum(purpose: str, token: str, secret: str) -> str:
    """Hex SHA-256 of ``purpose + token + secret``."""
    return hashlib.sha256(f"{purpose}{token}{secret}".encode("utf-8")).hexdigest()


def attach_checksum(token: str, secret: str) -> str:
    return checksum(ATTACH_PURPOSE, token, secret)


def session_id(broker_id: str, token: str, secret: str) -> str:
    """``SSO-{broker}-{token}-{checksum}``, sent as the bearer credential."""
    return f"SSO-{broker_id}-{token}-{checksum(SESSION_PURPOSE, token, secret)}"


def to_base36(number: int) -> str:
    if number < 0:
        raise ValueError("number must be non-negative")
    if number == 0:
        return "0"
    digits: list[str] = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_BASE36_DIGITS[rem])
    return "".join(reversed(digits))


# ---- Redirect parameter encoders ----------------------------------------------------
#
# The sync-login flow embeds the session identifier in the ``bid`` query
# parameter of the SSO login redirect. Broker and server must agree on the
# encoding; both known variants are available.


class RedirectEncoder(Protocol):
    def encode(self, value: str) -> str: ...

    def decode(self, value: str) -> str: ...


class Base64UrlEncoder:
    """Unpadded URL-safe base64."""

    def encode(self, value: str) -> str:
        return base64.urlsafe_b64encode(value.encode("utf-8")).rstrip(b"=").decode("ascii")

    def decode(self, value: str) -> str:
        padding = "=" * (-len(value) % 4)
        return base64.urlsafe_b64decode(value + padding).decode("utf-8")


class ShiftEncoder:
    """
    Keyed byte-shift encoding used by older SSO server deployments.

    Each byte is added to the matching character of ``sha1(key)`` (cycled),
    written in base 36 and reversed. Sums are always >= 48, so every byte
    yields exactly two base-36 digits.
    """

    def __init__(self, key: str) -> None:
        if not key:
            raise ValueError("ShiftEncoder requires a key")
        self._key = hashlib.sha1(key.encode("utf-8")).hexdigest()

    def encode(self, value: str) -> str:
        out: list[str] = []
        for i, byte in enumerate(value.encode("utf-8")):
            shifted = byte + ord(self._key[i % len(self._key)])
            out.append(to_base36(shifted)[::-1])
        return "".join(out)

    def decode(self, value: str) -> str:
        if len(value) % 2:
            raise ValueError("Invalid shift-encoded value")
        raw = bytearray()
        for i in range(0, len(value), 2):
            shifted = int(value[i : i + 2][::-1], 36)
            raw.append(shifted - ord(self._key[(i // 2) % len(self._key)]))
        return raw.decode("utf-8")


def make_encoder(name: str, key: str | None = None) -> RedirectEncoder:
    normalized = name.strip().lower()
    if normalized in ("base64url", "base64"):
        return Base64UrlEncoder()
    if normalized == "shift":
        return ShiftEncoder(key or "")
    raise ValueError(f"Unknown redirect encoding: {name}")
