"""OpenTok session and token issuance package."""

from .archives import Archive, ArchiveError, ArchiveList, Archives
from .client import (
    Client,
    OpenTokAuthenticationError,
    OpenTokRequestError,
    OpenTokTransportError,
)
from .config import (
    ConfigurationError,
    OpenTokConfig,
    TokenPolicy,
    load_opentok_config,
    load_token_policy,
)
from .constants import API_URL, TOKEN_SENTINEL
from .credential import Credential, KeyMaterialProvider
from .opentok import OpenTok
from .session import (
    IssuanceError,
    MalformedResponse,
    Session,
    TransportFailure,
    create_session,
)
from .session_options import (
    InvalidLocationHint,
    SessionCreateOptions,
    ValidationError,
    normalize_session_options,
)
from .token_generator import (
    InvalidClaim,
    Role,
    SignedToken,
    TokenClaims,
    TokenError,
    TokenVerificationError,
    decode_token,
    generate_token,
    verify_token,
)

__version__ = "0.1.0"

__all__ = [
    "API_URL",
    "TOKEN_SENTINEL",
    "OpenTok",
    "Credential",
    "KeyMaterialProvider",
    "OpenTokConfig",
    "TokenPolicy",
    "ConfigurationError",
    "load_opentok_config",
    "load_token_policy",
    "Session",
    "create_session",
    "IssuanceError",
    "TransportFailure",
    "MalformedResponse",
    "SessionCreateOptions",
    "normalize_session_options",
    "ValidationError",
    "InvalidLocationHint",
    "Role",
    "TokenClaims",
    "SignedToken",
    "TokenError",
    "InvalidClaim",
    "TokenVerificationError",
    "generate_token",
    "decode_token",
    "verify_token",
    "Client",
    "OpenTokTransportError",
    "OpenTokAuthenticationError",
    "OpenTokRequestError",
    "Archives",
    "Archive",
    "ArchiveList",
    "ArchiveError",
]
