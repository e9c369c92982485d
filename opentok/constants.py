"""Platform constants shared by the session and token helpers."""

from __future__ import annotations

API_URL = "https://api.opentok.com"

# Prefix identifying version 1 of the signed token layout.
TOKEN_SENTINEL = "T1=="

ROLE_SUBSCRIBER = "subscriber"
ROLE_PUBLISHER = "publisher"
ROLE_MODERATOR = "moderator"
ROLES = (ROLE_SUBSCRIBER, ROLE_PUBLISHER, ROLE_MODERATOR)

DEFAULT_TOKEN_LIFETIME = 24 * 60 * 60
MAX_TOKEN_LIFETIME = 30 * 24 * 60 * 60
MAX_CONNECTION_DATA_BYTES = 1000

MAX_SESSION_ID_LENGTH = 255

DEFAULT_TIMEOUT = 30
