"""Validation and normalization of session-creation options."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

logger = logging.getLogger(__name__)

RECOGNIZED_OPTIONS = frozenset({"p2p", "location"})

P2P_ENABLED = "enabled"
P2P_DISABLED = "disabled"

_OCTET = r"(?:25[0-5]|2[0-4][0-9]|1[0-9][0-9]|[1-9][0-9]|[0-9])"
IPV4_PATTERN = re.compile(rf"{_OCTET}\.{_OCTET}\.{_OCTET}\.{_OCTET}")


class ValidationError(ValueError):
    """Raised when a caller-supplied session option is malformed."""


class InvalidLocationHint(ValidationError):
    """Raised when the ``location`` option is not a dotted-quad IPv4 address."""

    def __init__(self, value: Any) -> None:
        super().__init__(f"location must be an IPv4 address, got {value!r}")
        self.value = value


@dataclass(frozen=True)
class SessionCreateOptions:
    """Normalized session request parameters."""

    p2p: bool = False
    location: Optional[str] = None

    @property
    def p2p_preference(self) -> str:
        return P2P_ENABLED if self.p2p else P2P_DISABLED

    def to_params(self) -> Dict[str, str]:
        """Flatten into the form parameters sent to the session endpoint."""

        params = {"p2p.preference": self.p2p_preference}
        if self.location is not None:
            params["location"] = self.location
        return params


def is_ipv4_address(value: Any) -> bool:
    return isinstance(value, str) and IPV4_PATTERN.fullmatch(value) is not None


def normalize_session_options(raw_options: Mapping[str, Any] | None = None) -> SessionCreateOptions:
    """Filter *raw_options* down to recognized keys and validate them.

    Unknown keys are dropped silently. A truthy ``p2p`` enables peer-to-peer
    media, anything else routes through the media router. ``location`` must be
    a dotted-quad IPv4 string when given; ``None`` is treated as absent.
    """

    options = {
        str(key): value
        for key, value in (raw_options or {}).items()
        if str(key) in RECOGNIZED_OPTIONS
    }
    dropped = set(map(str, (raw_options or {}).keys())) - RECOGNIZED_OPTIONS
    if dropped:
        logger.debug("Ignoring unrecognized session options: %s", sorted(dropped))

    location = options.get("location")
    if location is not None and not is_ipv4_address(location):
        raise InvalidLocationHint(location)

    return SessionCreateOptions(p2p=bool(options.get("p2p")), location=location)
