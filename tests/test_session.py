from __future__ import annotations

from types import SimpleNamespace

import pytest

from opentok.client import OpenTokTransportError
from opentok.credential import Credential
from opentok.session import (
    IssuanceError,
    MalformedResponse,
    Session,
    TransportFailure,
    create_session,
    extract_session_id,
)
from opentok.session_options import InvalidLocationHint
from opentok.token_generator import Role, decode_token

CREDENTIAL = Credential("12345", "s3cr3t")


class StubTransport:
    def __init__(self, response=None, error: Exception | None = None) -> None:
        self.response = response
        self.error = error
        self.calls: list[dict] = []

    def create_session(self, params):
        self.calls.append(dict(params))
        if self.error is not None:
            raise self.error
        return self.response


def _response(session_id: str) -> dict:
    return {"sessions": {"Session": {"session_id": session_id}}}


def test_create_session_end_to_end() -> None:
    transport = StubTransport(_response("1_MX4xMjM0NX5-"))

    session = create_session(CREDENTIAL, transport, {"p2p": False})

    assert session.session_id == "1_MX4xMjM0NX5-"
    assert session.create_options.p2p_preference == "disabled"
    assert transport.calls == [{"p2p.preference": "disabled"}]

    token = session.generate_token(role="moderator")
    claims = decode_token(token).claims
    assert claims.session_id == "1_MX4xMjM0NX5-"
    assert claims.role is Role.MODERATOR
    assert decode_token(token).partner_id == "12345"


def test_session_keeps_original_options() -> None:
    transport = StubTransport(_response("sid"))
    options = {"p2p": True, "location": "10.1.2.3", "bogus": "ignored"}

    session = create_session(CREDENTIAL, transport, options)

    assert transport.calls == [{"p2p.preference": "enabled", "location": "10.1.2.3"}]
    assert dict(session.options) == options
    assert session.p2p is True
    assert session.location == "10.1.2.3"
    with pytest.raises(TypeError):
        session.options["p2p"] = False  # type: ignore[index]


def test_validation_errors_skip_transport() -> None:
    transport = StubTransport(_response("sid"))

    with pytest.raises(InvalidLocationHint):
        create_session(CREDENTIAL, transport, {"location": "not-an-ip"})

    assert transport.calls == []


def test_transport_errors_are_wrapped() -> None:
    cause = OpenTokTransportError("boom", status_code=500)
    transport = StubTransport(error=cause)

    with pytest.raises(TransportFailure) as excinfo:
        create_session(CREDENTIAL, transport, {})

    assert excinfo.value.cause is cause
    assert excinfo.value.__cause__ is cause
    assert isinstance(excinfo.value, IssuanceError)


@pytest.mark.parametrize(
    "response",
    [
        None,
        {},
        {"sessions": {}},
        {"sessions": {"Session": {}}},
        _response(""),
        _response("   "),
        _response("x" * 256),
        {"sessions": {"Session": [{"session_id": "a"}]}},
    ],
)
def test_malformed_responses_are_rejected(response) -> None:
    with pytest.raises(MalformedResponse):
        create_session(CREDENTIAL, StubTransport(response), {})


def test_extract_session_id_strips_whitespace() -> None:
    assert extract_session_id(_response("  sid\n")) == "sid"


def test_session_is_immutable_and_hides_secret() -> None:
    session = Session("sid", CREDENTIAL)

    with pytest.raises(AttributeError):
        session.session_id = "other"  # type: ignore[misc]
    assert "s3cr3t" not in repr(session)
    assert str(session) == "sid"


def test_any_key_material_provider_can_back_a_session() -> None:
    provider = SimpleNamespace(api_key="777", api_secret="other-secret")
    session = Session("sid", provider)

    assert decode_token(session.generate_token()).partner_id == "777"
