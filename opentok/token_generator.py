"""Signed capability tokens scoped to a single session.

A token is legible without the API secret but tamper-evident with it::

    T1==<api_key>.<claims>.<signature>

``claims`` is the URL-safe base64 encoding of a form-encoded claim list in a
fixed order (``session_id``, ``create_time``, ``expire_time``, ``role``,
optional ``data`` and ``nonce``). ``signature`` is the URL-safe base64
encoding of an HMAC-SHA256 computed with the API secret over the encoded
claims exactly as they appear in the token.

Token minting never performs I/O. Any principal satisfying
:class:`opentok.credential.KeyMaterialProvider` can sign.
"""

from __future__ import annotations

import base64
import binascii
import logging
import math
import os
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Optional, Tuple
from urllib.parse import parse_qsl, urlencode

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, hmac

from .config import TokenPolicy
from .constants import (
    MAX_SESSION_ID_LENGTH,
    ROLE_MODERATOR,
    ROLE_PUBLISHER,
    ROLE_SUBSCRIBER,
    ROLES,
    TOKEN_SENTINEL,
)
from .credential import KeyMaterialProvider

logger = logging.getLogger(__name__)

_NONCE_SIZE = 16
_SEPARATOR = "."
_CLAIM_ORDER = ("session_id", "create_time", "expire_time", "role", "data", "nonce")
_REQUIRED_CLAIMS = frozenset(_CLAIM_ORDER) - {"data"}


class TokenError(ValueError):
    """Base class for token minting and verification errors."""


class InvalidClaim(TokenError):
    """Raised when a claim is malformed or outside the token policy."""

    def __init__(self, field: str, reason: str) -> None:
        super().__init__(f"Invalid {field}: {reason}")
        self.field = field
        self.reason = reason


class TokenVerificationError(TokenError):
    """Raised when a token cannot be decoded or fails verification."""


class Role(str, Enum):
    """Capabilities a token grants within its session."""

    SUBSCRIBER = ROLE_SUBSCRIBER
    PUBLISHER = ROLE_PUBLISHER
    MODERATOR = ROLE_MODERATOR

    @classmethod
    def parse(cls, value: "Role | str") -> "Role":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise InvalidClaim("role", f"{value!r} is not one of {', '.join(ROLES)}")


@dataclass(frozen=True)
class TokenClaims:
    """Claim set carried by a token, with defaults already applied."""

    session_id: str
    role: Role
    create_time: int
    expire_time: int
    nonce: str
    connection_data: Optional[str] = None

    def to_pairs(self) -> List[Tuple[str, str]]:
        values = {
            "session_id": self.session_id,
            "create_time": str(self.create_time),
            "expire_time": str(self.expire_time),
            "role": self.role.value,
            "data": self.connection_data,
            "nonce": self.nonce,
        }
        return [(name, values[name]) for name in _CLAIM_ORDER if values[name] is not None]


@dataclass(frozen=True)
class SignedToken:
    """Structural view of a token string."""

    partner_id: str
    encoded_claims: str
    signature: bytes
    claims: TokenClaims


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii")


def _b64decode(text: str) -> bytes:
    return base64.b64decode(text.encode("ascii"), altchars=b"-_", validate=True)


def _new_nonce() -> str:
    return os.urandom(_NONCE_SIZE).hex()


def _hmac(secret: str, message: bytes) -> hmac.HMAC:
    mac = hmac.HMAC(secret.encode("utf-8"), hashes.SHA256())
    mac.update(message)
    return mac


def sign_claims(api_secret: str, encoded_claims: str) -> bytes:
    """Return the HMAC-SHA256 of *encoded_claims* keyed with *api_secret*."""

    return _hmac(api_secret, encoded_claims.encode("utf-8")).finalize()


def encode_claims(claims: TokenClaims) -> str:
    return _b64encode(urlencode(claims.to_pairs()).encode("ascii"))


def _to_epoch_seconds(value: Any) -> int:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(value.timestamp())
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidClaim("expire_time", f"expected epoch seconds or datetime, got {value!r}")
    if not math.isfinite(value):
        raise InvalidClaim("expire_time", f"{value!r} is not a finite timestamp")
    return int(value)


def _validate_session_id(session_id: Any) -> str:
    if not isinstance(session_id, str) or not session_id:
        raise InvalidClaim("session_id", "must be a non-empty string")
    if len(session_id) > MAX_SESSION_ID_LENGTH:
        raise InvalidClaim(
            "session_id", f"must be at most {MAX_SESSION_ID_LENGTH} characters"
        )
    try:
        session_id.encode("utf-8")
    except UnicodeEncodeError as exc:
        raise InvalidClaim("session_id", "is not encodable as UTF-8") from exc
    return session_id


def _validate_connection_data(data: Any, policy: TokenPolicy) -> Optional[str]:
    if data is None:
        return None
    if not isinstance(data, str):
        raise InvalidClaim("connection_data", f"expected a string, got {type(data).__name__}")
    try:
        size = len(data.encode("utf-8"))
    except UnicodeEncodeError as exc:
        raise InvalidClaim("connection_data", "is not encodable as UTF-8") from exc
    if size > policy.max_connection_data_bytes:
        raise InvalidClaim(
            "connection_data",
            f"{size} bytes exceeds the limit of {policy.max_connection_data_bytes} bytes",
        )
    return data


def build_claims(
    session_id: str,
    *,
    role: Role | str = Role.PUBLISHER,
    expire_time: Any = None,
    connection_data: Optional[str] = None,
    policy: Optional[TokenPolicy] = None,
    now: Optional[float] = None,
) -> TokenClaims:
    """Apply defaults and policy checks, returning the claims to sign.

    Out-of-policy values raise :class:`InvalidClaim`; nothing is clamped or
    truncated.
    """

    policy = policy or TokenPolicy()
    create_time = int(time.time() if now is None else now)

    if expire_time is None:
        expires = create_time + policy.default_lifetime
    else:
        expires = _to_epoch_seconds(expire_time)
        if expires <= create_time:
            raise InvalidClaim("expire_time", f"{expires} is not in the future")
        if expires > create_time + policy.max_lifetime:
            raise InvalidClaim(
                "expire_time",
                f"{expires} exceeds the maximum lifetime of {policy.max_lifetime} seconds",
            )

    return TokenClaims(
        session_id=_validate_session_id(session_id),
        role=Role.parse(role),
        create_time=create_time,
        expire_time=expires,
        nonce=_new_nonce(),
        connection_data=_validate_connection_data(connection_data, policy),
    )


def generate_token(
    key_material: KeyMaterialProvider,
    session_id: str,
    *,
    role: Role | str = Role.PUBLISHER,
    expire_time: Any = None,
    connection_data: Optional[str] = None,
    policy: Optional[TokenPolicy] = None,
    now: Optional[float] = None,
) -> str:
    """Mint a token for *session_id* signed with *key_material*'s secret."""

    partner_id = str(key_material.api_key)
    if not partner_id or _SEPARATOR in partner_id:
        raise TokenError(f"api_key {partner_id!r} cannot be used as a partner id")

    claims = build_claims(
        session_id,
        role=role,
        expire_time=expire_time,
        connection_data=connection_data,
        policy=policy,
        now=now,
    )
    encoded = encode_claims(claims)
    signature = sign_claims(key_material.api_secret, encoded)
    logger.debug(
        "Minted token",
        extra={
            "session_id": claims.session_id,
            "role": claims.role.value,
            "expire_time": claims.expire_time,
        },
    )
    return f"{TOKEN_SENTINEL}{partner_id}{_SEPARATOR}{encoded}{_SEPARATOR}{_b64encode(signature)}"


def _parse_claims(encoded: str) -> TokenClaims:
    try:
        raw = _b64decode(encoded).decode("ascii")
        pairs = parse_qsl(raw, keep_blank_values=True, strict_parsing=True)
    except (binascii.Error, UnicodeError, ValueError) as exc:
        raise TokenVerificationError("Token claims are not decodable") from exc

    values: dict[str, str] = {}
    for name, value in pairs:
        if name not in _CLAIM_ORDER:
            raise TokenVerificationError(f"Unknown claim in token: {name}")
        if name in values:
            raise TokenVerificationError(f"Duplicate claim in token: {name}")
        values[name] = value
    missing = _REQUIRED_CLAIMS - values.keys()
    if missing:
        raise TokenVerificationError(f"Token is missing claims: {sorted(missing)}")

    try:
        create_time = int(values["create_time"])
        expire_time = int(values["expire_time"])
        role = Role.parse(values["role"])
    except (ValueError, InvalidClaim) as exc:
        raise TokenVerificationError(f"Token claims are malformed: {exc}") from exc

    return TokenClaims(
        session_id=values["session_id"],
        role=role,
        create_time=create_time,
        expire_time=expire_time,
        nonce=values["nonce"],
        connection_data=values.get("data"),
    )


def _split_token(token: str) -> tuple[str, str, str]:
    if not isinstance(token, str) or not token.startswith(TOKEN_SENTINEL):
        raise TokenVerificationError("Token does not start with the version 1 prefix")
    parts = token[len(TOKEN_SENTINEL):].split(_SEPARATOR)
    if len(parts) != 3 or not all(parts):
        raise TokenVerificationError("Token must contain partner, claims and signature")
    return parts[0], parts[1], parts[2]


def decode_token(token: str) -> SignedToken:
    """Decode *token* without checking its signature."""

    partner_id, encoded, signature_text = _split_token(token)
    try:
        signature = _b64decode(signature_text)
    except (binascii.Error, UnicodeError) as exc:
        raise TokenVerificationError("Token signature is not valid base64") from exc
    return SignedToken(
        partner_id=partner_id,
        encoded_claims=encoded,
        signature=signature,
        claims=_parse_claims(encoded),
    )


def verify_token(
    token: str,
    api_secret: str,
    *,
    api_key: Optional[str] = None,
    now: Optional[float] = None,
    check_expiry: bool = True,
) -> TokenClaims:
    """Check the signature of *token* and return its claims.

    The HMAC is compared in constant time before the claims are parsed. When
    *api_key* is given the partner id must match it.
    """

    partner_id, encoded, signature_text = _split_token(token)
    if api_key is not None and partner_id != str(api_key):
        raise TokenVerificationError("Token was issued for a different partner")
    try:
        signature = _b64decode(signature_text)
    except (binascii.Error, UnicodeError) as exc:
        raise TokenVerificationError("Token signature is not valid base64") from exc
    try:
        _hmac(api_secret, encoded.encode("utf-8")).verify(signature)
    except InvalidSignature as exc:
        raise TokenVerificationError("Token signature does not match") from exc

    claims = _parse_claims(encoded)
    if check_expiry:
        current = int(time.time() if now is None else now)
        if claims.expire_time <= current:
            raise TokenVerificationError("Token has expired")
    return claims
