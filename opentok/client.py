"""HTTP transport for the OpenTok REST API.

The client is intentionally thin: each helper maps directly to a REST endpoint
and returns the parsed response body. It performs no retries; callers decide
whether a failure is worth repeating. Every request is authenticated with the
partner key and secret via the ``X-TB-PARTNER-AUTH`` header.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ElementTree
from typing import Any, Dict, Mapping, Optional

import requests
from requests import RequestException, Response

from .config import OpenTokConfig
from .constants import API_URL, DEFAULT_TIMEOUT

logger = logging.getLogger(__name__)

AUTH_HEADER = "X-TB-PARTNER-AUTH"


class OpenTokTransportError(RuntimeError):
    """Raised when the REST endpoint is unreachable or returns an error."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class OpenTokAuthenticationError(OpenTokTransportError):
    """Raised when the platform rejects the API key/secret pair."""


class OpenTokRequestError(OpenTokTransportError):
    """Raised for non-success responses and unparseable bodies."""


def xml_to_dict(element: ElementTree.Element) -> Any:
    """Convert an XML element into nested dictionaries.

    Leaf elements become their stripped text. Repeated child tags are
    collected into lists.
    """

    children = list(element)
    if not children:
        return (element.text or "").strip()
    result: Dict[str, Any] = {}
    for child in children:
        value = xml_to_dict(child)
        if child.tag in result:
            existing = result[child.tag]
            if not isinstance(existing, list):
                result[child.tag] = existing = [existing]
            existing.append(value)
        else:
            result[child.tag] = value
    return result


class Client:
    """REST client bound to a single partner credential."""

    def __init__(
        self,
        api_key: str,
        api_secret: str,
        api_url: str = API_URL,
        *,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.api_key = str(api_key)
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self._session = requests.Session()
        self._session.headers.update({AUTH_HEADER: f"{self.api_key}:{api_secret}"})

    @classmethod
    def from_config(cls, config: OpenTokConfig) -> "Client":
        return cls(config.api_key, config.api_secret, config.api_url, timeout=config.timeout)

    def __repr__(self) -> str:
        return f"Client(api_key={self.api_key!r}, api_url={self.api_url!r})"

    def request(
        self,
        method: str,
        path: str,
        *,
        data: Optional[Mapping[str, Any]] = None,
        json_body: Optional[Mapping[str, Any]] = None,
        params: Optional[Mapping[str, Any]] = None,
    ) -> Response:
        """Perform a request and return the successful response."""

        url = f"{self.api_url}{path}"
        logger.debug("HTTP %s %s params=%s data=%s", method, url, params, data)
        try:
            response = self._session.request(
                method,
                url,
                data=data,
                json=json_body,
                params=params,
                timeout=self.timeout,
            )
        except RequestException as exc:
            logger.error(
                "OpenTok connection failed: %s",
                exc,
                exc_info=logger.isEnabledFor(logging.DEBUG),
            )
            raise OpenTokTransportError(
                f"Could not reach {self.api_url}; check network access and OPENTOK_API_URL."
            ) from exc
        self._raise_for_status(response)
        return response

    def _raise_for_status(self, response: Response) -> None:
        if response.ok:
            return
        logger.error("OpenTok HTTP error %s from %s", response.status_code, response.url)
        logger.debug("OpenTok error body: %s", response.text)
        if response.status_code in (401, 403):
            raise OpenTokAuthenticationError(
                "Authentication failed; check OPENTOK_API_KEY and OPENTOK_API_SECRET.",
                status_code=response.status_code,
            )
        raise OpenTokRequestError(
            f"OpenTok returned HTTP {response.status_code}",
            status_code=response.status_code,
        )

    def _json(self, response: Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            logger.debug("OpenTok JSON parse error: %s", response.text, exc_info=True)
            raise OpenTokRequestError(
                "OpenTok returned malformed JSON", status_code=response.status_code
            ) from exc

    # Sessions -------------------------------------------------------------

    def create_session(self, params: Mapping[str, str]) -> Dict[str, Any]:
        """Create a session; the id is at ``["sessions"]["Session"]["session_id"]``."""

        response = self.request("POST", "/session/create", data=dict(params))
        try:
            root = ElementTree.fromstring(response.content)
        except ElementTree.ParseError as exc:
            logger.debug("OpenTok XML parse error: %s", response.text, exc_info=True)
            raise OpenTokRequestError(
                "OpenTok returned malformed XML", status_code=response.status_code
            ) from exc
        return {root.tag: xml_to_dict(root)}

    # Archives -------------------------------------------------------------

    @property
    def _archive_path(self) -> str:
        return f"/v2/partner/{self.api_key}/archive"

    def start_archive(self, session_id: str, name: str | None = None) -> Dict[str, Any]:
        body: Dict[str, Any] = {"sessionId": session_id, "action": "start"}
        if name is not None:
            body["name"] = name
        return self._json(self.request("POST", self._archive_path, json_body=body))

    def stop_archive(self, archive_id: str) -> Dict[str, Any]:
        return self._json(
            self.request("POST", f"{self._archive_path}/{archive_id}/stop")
        )

    def get_archive(self, archive_id: str) -> Dict[str, Any]:
        return self._json(self.request("GET", f"{self._archive_path}/{archive_id}"))

    def list_archives(self, offset: int = 0, count: int | None = None) -> Dict[str, Any]:
        params: Dict[str, Any] = {"offset": offset}
        if count is not None:
            params["count"] = count
        return self._json(self.request("GET", self._archive_path, params=params))

    def delete_archive(self, archive_id: str) -> None:
        self.request("DELETE", f"{self._archive_path}/{archive_id}")
