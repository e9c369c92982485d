"""Session values and the factory that obtains them from the platform.

Sessions are opaque, non-expiring identifiers. They cannot be destroyed; a
:class:`Session` lives only as long as the Python object does.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional, Protocol

from .config import TokenPolicy
from .constants import MAX_SESSION_ID_LENGTH
from .credential import KeyMaterialProvider
from .session_options import SessionCreateOptions, normalize_session_options
from .token_generator import Role, generate_token

logger = logging.getLogger(__name__)


class IssuanceError(RuntimeError):
    """Raised when a session could not be obtained from the platform."""


class TransportFailure(IssuanceError):
    """The transport collaborator failed; the original error is in ``cause``."""

    def __init__(self, cause: BaseException) -> None:
        super().__init__(f"Failed to create session: {cause}")
        self.cause = cause


class MalformedResponse(IssuanceError):
    """The platform response did not contain a usable session id."""


class SessionTransport(Protocol):
    def create_session(self, params: Mapping[str, str]) -> Mapping[str, Any]: ...


@dataclass(frozen=True)
class Session:
    """A session id bound to the credential that created it.

    ``options`` is the caller's original option mapping; ``create_options`` is
    the validated subset that was sent to the platform.
    """

    session_id: str
    credential: KeyMaterialProvider = field(repr=False)
    options: Mapping[str, Any] = field(default_factory=dict, compare=False)
    create_options: SessionCreateOptions = field(default_factory=SessionCreateOptions)
    token_policy: Optional[TokenPolicy] = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "options", MappingProxyType(dict(self.options)))

    def __str__(self) -> str:
        return self.session_id

    @property
    def p2p(self) -> bool:
        return self.create_options.p2p

    @property
    def location(self) -> Optional[str]:
        return self.create_options.location

    def generate_token(
        self,
        *,
        role: Role | str = Role.PUBLISHER,
        expire_time: Any = None,
        connection_data: Optional[str] = None,
        now: Optional[float] = None,
    ) -> str:
        """Mint a token for this session."""

        return generate_token(
            self.credential,
            self.session_id,
            role=role,
            expire_time=expire_time,
            connection_data=connection_data,
            policy=self.token_policy,
            now=now,
        )


def extract_session_id(response: Any) -> str:
    """Pull the session id out of a session-creation response."""

    try:
        session_id = response["sessions"]["Session"]["session_id"]
    except (KeyError, TypeError, IndexError) as exc:
        raise MalformedResponse("Response does not contain a session id") from exc
    if not isinstance(session_id, str) or not session_id.strip():
        raise MalformedResponse("Response contains an empty session id")
    session_id = session_id.strip()
    if len(session_id) > MAX_SESSION_ID_LENGTH:
        raise MalformedResponse(
            f"Session id exceeds {MAX_SESSION_ID_LENGTH} characters"
        )
    return session_id


def create_session(
    credential: KeyMaterialProvider,
    transport: SessionTransport,
    options: Mapping[str, Any] | None = None,
    *,
    token_policy: Optional[TokenPolicy] = None,
) -> Session:
    """Validate *options*, ask *transport* for a session and wrap the result.

    Validation errors propagate unchanged. Any exception raised by the
    transport is wrapped in :class:`TransportFailure`.
    """

    original = dict(options or {})
    create_options = normalize_session_options(original)
    try:
        response = transport.create_session(create_options.to_params())
    except Exception as exc:
        raise TransportFailure(exc) from exc
    session_id = extract_session_id(response)
    logger.info(
        "Created session",
        extra={"session_id": session_id, "p2p_preference": create_options.p2p_preference},
    )
    return Session(
        session_id=session_id,
        credential=credential,
        options=original,
        create_options=create_options,
        token_policy=token_policy,
    )
