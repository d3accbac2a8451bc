"""
Contains help methods and values to perform tests.
"""
import base64
import shutil
from unittest.mock import Mock

import pytest
from saml2 import BINDING_HTTP_REDIRECT
from saml2.authn_context import AuthnBroker, authn_context_class_ref, PASSWORD
from saml2.config import IdPConfig
from saml2.saml import NAME_FORMAT_URI, NAMEID_FORMAT_EMAILADDRESS, NameID
from saml2.server import Server

from multisaml.cache import InMemoryCacheProvider
from multisaml.saml import SAML
from multisaml.strategy import AuthenticationActions

BASE_URL = "https://sp.example.com"

IDP_ENTITY_ID = "https://idp.example.com"
IDP_ENTRY_POINT = "https://idp.example.com/saml2/sso"

# Not a parsable certificate; metadata generation only copies it.
IDP_CERT = """-----BEGIN CERTIFICATE-----
MIICsDCCAhmgAwIBAgIJAJrzqSSwmDY9MA0GCSqGSIb3DQEBBQUAMEUxCzAJBgNV
BAYTAkFVMRMwEQYDVQQIEwpTb21lLVN0YXRlMSEwHwYDVQQKExhJbnRlcm5ldCBX
-----END CERTIFICATE-----"""

IDP_CERT_BODY = (
    "MIICsDCCAhmgAwIBAgIJAJrzqSSwmDY9MA0GCSqGSIb3DQEBBQUAMEUxCzAJBgNV"
    "BAYTAkFVMRMwEQYDVQQIEwpTb21lLVN0YXRlMSEwHwYDVQQKExhJbnRlcm5ldCBX"
)

requires_xmlsec = pytest.mark.skipif(
    shutil.which("xmlsec1") is None, reason="xmlsec1 is needed to set up a pysaml2 client"
)


def verify(profile, done):
    done(None, {"name_id": profile["name_id"]}, {"issuer": profile["issuer"]})


def mock_actions():
    return Mock(spec=AuthenticationActions)


def create_saml(options=None, **kwargs):
    """
    An engine with its own cache, as a strategy would build it.
    """
    options = dict(options or {}, **kwargs)
    options.setdefault("cache_provider", InMemoryCacheProvider())
    return SAML(options)


class FakeIdP(Server):
    """
    IdP answering AuthnRequests with unsigned responses.
    """

    def __init__(self, sp_metadata):
        config = IdPConfig().load({
            "entityid": IDP_ENTITY_ID,
            "service": {
                "idp": {
                    "endpoints": {
                        "single_sign_on_service": [(IDP_ENTRY_POINT, BINDING_HTTP_REDIRECT)],
                    },
                    "policy": {
                        "default": {
                            "lifetime": {"minutes": 15},
                            "attribute_restrictions": None,
                            "name_form": NAME_FORMAT_URI,
                            "fail_on_missing_requested": False,
                        },
                    },
                    "name_id_format": [NAMEID_FORMAT_EMAILADDRESS],
                    "want_authn_requests_signed": False,
                },
            },
            "metadata": {"inline": [sp_metadata]},
        })
        Server.__init__(self, config=config)

    def handle_auth_req(self, saml_request, userid, identity):
        auth_req = self.parse_authn_request(saml_request, BINDING_HTTP_REDIRECT)
        resp_args = self.response_args(auth_req.message)
        authn_broker = AuthnBroker()
        authn_broker.add(authn_context_class_ref(PASSWORD), lambda: None, 10, IDP_ENTITY_ID)
        resp_args["authn"] = authn_broker.get_authn_by_accr(PASSWORD)

        name_id = NameID(text=userid, format=NAMEID_FORMAT_EMAILADDRESS)
        _resp = self.create_authn_response(identity, userid=userid, name_id=name_id, **resp_args)
        return base64.b64encode(str(_resp).encode("utf-8")).decode("ascii")
