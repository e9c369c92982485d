"""Top-level entry point for creating sessions and minting tokens."""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping, Optional

from .archives import Archives
from .client import Client
from .config import OpenTokConfig, TokenPolicy, load_opentok_config
from .constants import API_URL, DEFAULT_TIMEOUT
from .credential import Credential
from .lazy import LazyCell
from .session import Session, create_session
from .token_generator import Role, generate_token

logger = logging.getLogger(__name__)

ClientFactory = Callable[[Credential, str, float], Any]


def _default_client_factory(credential: Credential, api_url: str, timeout: float) -> Client:
    return Client(credential.api_key, credential.api_secret, api_url, timeout=timeout)


class OpenTok:
    """Create sessions, mint tokens and manage archives for one API key.

    Key material is fixed at construction. Sessions and the transport client
    hold references to it, so there is no way to change it afterwards.

    The transport client and the :class:`Archives` facade are built on first
    use and shared for the lifetime of the instance.
    """

    def __init__(
        self,
        api_key: str | int,
        api_secret: str,
        api_url: str = API_URL,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        token_policy: Optional[TokenPolicy] = None,
        client_factory: Optional[ClientFactory] = None,
    ) -> None:
        self._credential = Credential(str(api_key), api_secret)
        self._api_url = api_url.rstrip("/")
        self._timeout = timeout
        self._token_policy = token_policy or TokenPolicy()
        factory = client_factory or _default_client_factory
        self._client_cell: LazyCell[Any] = LazyCell(
            lambda: factory(self._credential, self._api_url, self._timeout)
        )
        self._archives_cell: LazyCell[Archives] = LazyCell(
            lambda: Archives(self._client_cell.get())
        )

    @classmethod
    def from_config(
        cls, config: OpenTokConfig, token_policy: Optional[TokenPolicy] = None
    ) -> "OpenTok":
        return cls(
            config.api_key,
            config.api_secret,
            config.api_url,
            timeout=config.timeout,
            token_policy=token_policy,
        )

    @classmethod
    def from_env(cls) -> "OpenTok":
        """Instantiate using environment variables or the config file."""

        return cls.from_config(load_opentok_config())

    def __repr__(self) -> str:
        return f"OpenTok(api_key={self.api_key!r}, api_url={self.api_url!r})"

    @property
    def api_key(self) -> str:
        return self._credential.api_key

    @property
    def api_secret(self) -> str:
        return self._credential.api_secret

    @property
    def api_url(self) -> str:
        return self._api_url

    @property
    def credential(self) -> Credential:
        return self._credential

    @property
    def token_policy(self) -> TokenPolicy:
        return self._token_policy

    @property
    def client(self) -> Any:
        return self._client_cell.get()

    @property
    def archives(self) -> Archives:
        """Archive management sharing this instance's transport client."""

        return self._archives_cell.get()

    def create_session(self, options: Mapping[str, Any] | None = None, **kwargs: Any) -> Session:
        """Create a new session and return it.

        Recognized options are ``p2p`` (stream directly between peers instead
        of through the media router, off by default) and ``location`` (an IPv4
        address used to place the session). Other keys are ignored.
        """

        merged = dict(options or {})
        merged.update(kwargs)
        return create_session(
            self._credential,
            self._client_cell.get(),
            merged,
            token_policy=self._token_policy,
        )

    def generate_token(
        self,
        session_id: str,
        *,
        role: Role | str = Role.PUBLISHER,
        expire_time: Any = None,
        connection_data: Optional[str] = None,
        now: Optional[float] = None,
    ) -> str:
        """Mint a token for any session id using this instance's credential."""

        return generate_token(
            self._credential,
            session_id,
            role=role,
            expire_time=expire_time,
            connection_data=connection_data,
            policy=self._token_policy,
            now=now,
        )
