import pytest

from multisaml.context import Context
from .util import BASE_URL
from .util import IDP_CERT
from .util import IDP_ENTITY_ID
from .util import IDP_ENTRY_POINT


@pytest.fixture
def context():
    context = Context()
    context.request_method = "GET"
    context.path = "/login"
    context.http_headers = {"Host": "sp.example.com", "X-Forwarded-Proto": "https"}
    return context


@pytest.fixture
def saml_options():
    options = {
        "issuer": BASE_URL + "/metadata",
        "callback_url": BASE_URL + "/saml/consume",
        "entry_point": IDP_ENTRY_POINT,
        "idp_issuer": IDP_ENTITY_ID,
        "cert": IDP_CERT,
    }
    return options
