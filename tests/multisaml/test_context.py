import pytest

from multisaml.context import Context


def test_path():
    context = Context()
    with pytest.raises(ValueError):
        context.path = None

    with pytest.raises(ValueError):
        context.path = "saml/consume"

    valid_path = "/saml/consume"
    context.path = valid_path
    assert context.path == valid_path


def test_request_ids_are_unique():
    assert Context().request_id != Context().request_id


def test_headers_are_case_insensitive():
    context = Context()
    context.http_headers = {"host": "sp.example.com", "X-FORWARDED-PROTO": "https"}

    assert context.get_header("Host") == "sp.example.com"
    assert context.host == "sp.example.com"
    assert context.protocol == "https"
    assert context.get_header("Cookie") is None


def test_protocol_defaults_to_http():
    context = Context()
    assert context.host is None
    assert context.protocol == "http"


def test_params_body_wins():
    context = Context()
    context.qs_params = {"RelayState": "from-query", "SAMLRequest": "abc"}
    context.request = {"RelayState": "from-body"}

    assert context.params() == {"RelayState": "from-body", "SAMLRequest": "abc"}


def test_decorate():
    context = Context()
    assert context.decorate(Context.KEY_TENANT, "acme") is context
    assert context.get_decoration(Context.KEY_TENANT) == "acme"
    assert context.get_decoration("missing") is None
