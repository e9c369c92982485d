from __future__ import annotations

import threading

import pytest

from opentok import OpenTok
from opentok.archives import Archives
from opentok.client import Client
from opentok.config import OpenTokConfig, TokenPolicy
from opentok.session import TransportFailure
from opentok.token_generator import Role, decode_token, verify_token


class StubClient:
    instances = 0

    def __init__(self, credential, api_url, timeout) -> None:
        type(self).instances += 1
        self.credential = credential
        self.api_url = api_url
        self.timeout = timeout
        self.params: list[dict] = []

    def create_session(self, params):
        self.params.append(dict(params))
        return {"sessions": {"Session": {"session_id": "1_MX4xMjM0NX5-"}}}


@pytest.fixture(autouse=True)
def reset_stub() -> None:
    StubClient.instances = 0


def _opentok(**kwargs) -> OpenTok:
    return OpenTok(12345, "s3cr3t", client_factory=StubClient, **kwargs)


def test_end_to_end_session_and_moderator_token() -> None:
    opentok = _opentok()

    session = opentok.create_session({"p2p": False})
    token = session.generate_token(role="moderator")

    assert session.session_id == "1_MX4xMjM0NX5-"
    assert session.create_options.p2p_preference == "disabled"
    claims = verify_token(token, "s3cr3t", api_key="12345")
    assert claims.session_id == "1_MX4xMjM0NX5-"
    assert claims.role is Role.MODERATOR


def test_keyword_options_are_accepted() -> None:
    opentok = _opentok()

    opentok.create_session(p2p=True, location="12.34.56.78")

    assert opentok.client.params == [{"p2p.preference": "enabled", "location": "12.34.56.78"}]


def test_client_is_built_lazily_and_reused() -> None:
    opentok = _opentok()
    assert StubClient.instances == 0

    opentok.create_session()
    opentok.create_session()

    assert StubClient.instances == 1
    assert opentok.client.credential is opentok.credential
    assert opentok.client.api_url == "https://api.opentok.com"


def test_concurrent_first_use_builds_one_client() -> None:
    opentok = _opentok()
    barrier = threading.Barrier(6)

    def worker() -> None:
        barrier.wait()
        opentok.create_session()

    threads = [threading.Thread(target=worker) for _ in range(6)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert StubClient.instances == 1
    assert len(opentok.client.params) == 6


def test_archives_are_memoized_and_share_client() -> None:
    opentok = _opentok()

    archives = opentok.archives

    assert isinstance(archives, Archives)
    assert opentok.archives is archives
    assert archives.client is opentok.client
    assert StubClient.instances == 1


def test_default_factory_builds_real_client() -> None:
    opentok = OpenTok("12345", "s3cr3t", "https://api.example.test/")

    assert isinstance(opentok.client, Client)
    assert opentok.client.api_url == "https://api.example.test"


def test_key_material_is_read_only() -> None:
    opentok = _opentok()

    assert opentok.api_key == "12345"
    with pytest.raises(AttributeError):
        opentok.api_key = "other"  # type: ignore[misc]
    with pytest.raises(AttributeError):
        opentok.api_secret = "other"  # type: ignore[misc]
    assert "s3cr3t" not in repr(opentok)


def test_generate_token_for_arbitrary_session_uses_policy() -> None:
    opentok = _opentok(token_policy=TokenPolicy(default_lifetime=60, max_lifetime=60))

    claims = decode_token(opentok.generate_token("other-session", now=1_000)).claims

    assert claims.session_id == "other-session"
    assert claims.expire_time == 1_060


def test_sessions_inherit_token_policy() -> None:
    opentok = _opentok(token_policy=TokenPolicy(default_lifetime=30, max_lifetime=60))

    token = opentok.create_session().generate_token(now=1_000)

    assert decode_token(token).claims.expire_time == 1_030


def test_transport_failures_surface_as_issuance_errors() -> None:
    class FailingClient(StubClient):
        def create_session(self, params):
            raise ConnectionError("down")

    opentok = OpenTok("12345", "s3cr3t", client_factory=FailingClient)

    with pytest.raises(TransportFailure):
        opentok.create_session()


def test_from_config() -> None:
    config = OpenTokConfig(api_key="42", api_secret="x", api_url="http://localhost:1", timeout=3)

    opentok = OpenTok.from_config(config)

    assert opentok.api_key == "42"
    assert opentok.api_url == "http://localhost:1"
    assert opentok.client.timeout == 3
