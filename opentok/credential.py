"""Key material used to authenticate transport calls and sign tokens."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable


@runtime_checkable
class KeyMaterialProvider(Protocol):
    """Anything exposing an API key/secret pair can mint tokens."""

    @property
    def api_key(self) -> str: ...

    @property
    def api_secret(self) -> str: ...


@dataclass(frozen=True)
class Credential:
    """Immutable API key/secret pair.

    The secret is excluded from ``repr`` so that credentials can appear in
    log records and tracebacks without leaking it.
    """

    api_key: str
    api_secret: str = field(repr=False)

    def __post_init__(self) -> None:
        # API keys are numeric but callers frequently pass them as ints.
        object.__setattr__(self, "api_key", str(self.api_key))
        if not self.api_key:
            raise ValueError("api_key must not be empty")
        if not self.api_secret:
            raise ValueError("api_secret must not be empty")
