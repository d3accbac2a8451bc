"""
The SAML protocol engine of a strategy.

An engine is built from a complete set of options and performs the service
provider side of the SAML handshakes through pysaml2.
"""
import base64
import logging
import os.path
from datetime import datetime
from datetime import timezone

from defusedxml.ElementTree import fromstring as xml_fromstring
from saml2 import BINDING_HTTP_POST
from saml2 import BINDING_HTTP_REDIRECT
from saml2 import VERSION
from saml2 import saml
from saml2 import samlp
from saml2 import xmldsig
from saml2.authn_context import requested_authn_context
from saml2.client import Saml2Client
from saml2.config import SPConfig
from saml2.s_utils import success_status_factory
from saml2.sigver import make_temp
from saml2.time_util import instant

import multisaml.logging_util as lu
from . import util
from .exception import MultiSAMLConfigurationError
from .exception import SAMLError
from .exception import SAMLInResponseToError
from .exception import SAMLResponseError
from .metadata import create_idp_metadata
from .metadata import create_sp_metadata
from .saml_util import get_location

logger = logging.getLogger(__name__)

SIGNATURE_ALGORITHMS = {
    "sha1": (xmldsig.SIG_RSA_SHA1, xmldsig.DIGEST_SHA1),
    "sha256": (xmldsig.SIG_RSA_SHA256, xmldsig.DIGEST_SHA256),
    "sha512": (xmldsig.SIG_RSA_SHA512, xmldsig.DIGEST_SHA512),
}

# accepted_clock_skew_ms of -1 turns the time checks off
_NO_CLOCK_CHECK_SECONDS = 100 * 365 * 24 * 3600

DEFAULTS = {
    "issuer": "onelogin_saml",
    "path": "/saml/consume",
    "identifier_format": saml.NAMEID_FORMAT_EMAILADDRESS,
    "authn_context": "urn:oasis:names:tc:SAML:2.0:ac:classes:PasswordProtectedTransport",
    "accepted_clock_skew_ms": 0,
    "signature_algorithm": "sha256",
    "validate_in_response_to": False,
    "want_assertions_signed": False,
    "force_authn": False,
    "disable_requested_authn_context": False,
}


class SAML(object):
    """
    SAML service provider engine.

    The pysaml2 client is only created when a handshake needs it, so building
    an engine is cheap and free of I/O.
    """

    def __init__(self, options):
        """
        :type options: collections.abc.Mapping[str, Any]

        :param options: the complete options of this engine
        """
        self.options = self._initialize(options)
        self._clients = {}
        self._decryption_key = None

    def _initialize(self, options):
        options = {**DEFAULTS, **{k: v for k, v in options.items() if v is not None}}

        if options["signature_algorithm"] not in SIGNATURE_ALGORITHMS:
            raise SAMLError("Unsupported signature_algorithm '{}'".format(options["signature_algorithm"]))

        certs = options.get("cert")
        if isinstance(certs, str):
            options["cert"] = [certs]

        if options.get("cache_provider") is None:
            raise MultiSAMLConfigurationError("A SAML engine needs a cache_provider")
        return options

    @property
    def cache_provider(self):
        return self.options["cache_provider"]

    @property
    def sign_alg(self):
        return SIGNATURE_ALGORITHMS[self.options["signature_algorithm"]][0]

    @property
    def digest_alg(self):
        return SIGNATURE_ALGORITHMS[self.options["signature_algorithm"]][1]

    @property
    def idp_entity_id(self):
        return self.options.get("idp_issuer") or self.options.get("entry_point")

    def get_callback_url(self, context):
        """
        The assertion consumer url, taken from the options or built from the
        host of the current request.

        :type context: multisaml.context.Context
        :rtype: str
        """
        if self.options.get("callback_url"):
            return self.options["callback_url"]

        host = self.options.get("host") or context.host
        if not host:
            raise SAMLError("Unable to build the callback url: no callback_url option and no Host header")
        protocol = self.options.get("protocol") or "{}://".format(context.protocol)
        return protocol + host + self.options["path"]

    def _accepted_time_diff(self):
        skew = self.options["accepted_clock_skew_ms"]
        if skew == -1:
            return _NO_CLOCK_CHECK_SECONDS
        return int(skew / 1000)

    def _idp_metadata(self):
        idp_metadata = self.options.get("idp_metadata")
        if isinstance(idp_metadata, dict):
            return idp_metadata
        if idp_metadata:
            return {"inline": [idp_metadata]}

        xml = create_idp_metadata(
            self.idp_entity_id,
            self.options.get("entry_point"),
            logout_url=self.options.get("logout_url"),
            certs=self.options.get("cert"),
        )
        return {"inline": [xml]}

    def sp_config_dict(self, callback_url):
        """
        Translates the options into a pysaml2 service provider configuration.

        :type callback_url: str
        :rtype: dict[str, Any]
        """
        endpoints = {"assertion_consumer_service": [(callback_url, BINDING_HTTP_POST)]}
        if self.options.get("logout_callback_url"):
            endpoints["single_logout_service"] = [
                (self.options["logout_callback_url"], BINDING_HTTP_REDIRECT),
                (self.options["logout_callback_url"], BINDING_HTTP_POST),
            ]

        sp = {
            "endpoints": endpoints,
            # InResponseTo is checked against the cache provider instead
            "allow_unsolicited": True,
            "authn_requests_signed": bool(self.options.get("key_file")),
            "logout_requests_signed": bool(self.options.get("key_file")),
            "want_assertions_signed": bool(self.options["want_assertions_signed"]),
            "want_response_signed": False,
        }
        if self.options.get("identifier_format"):
            sp["name_id_format"] = [self.options["identifier_format"]]

        conf = {
            "entityid": self.options["issuer"],
            "service": {"sp": sp},
            "metadata": self._idp_metadata(),
            "accepted_time_diff": self._accepted_time_diff(),
        }
        for key in ["key_file", "cert_file", "xmlsec_binary"]:
            if self.options.get(key):
                conf[key] = self.options[key]

        decryption_key_file = self._decryption_key_file()
        if decryption_key_file:
            conf["encryption_keypairs"] = [{"key_file": decryption_key_file}]
        return conf

    def _decryption_key_file(self):
        """
        The file holding decryption_pvk, which is either a path or the PEM
        itself. pysaml2 only decrypts assertions with keys read from files.

        :rtype: str | None
        """
        pvk = self.options.get("decryption_pvk")
        if not pvk:
            return None
        if os.path.isfile(pvk):
            return pvk
        if self._decryption_key is None:
            # removed when the engine is garbage collected
            self._decryption_key = make_temp(pvk, suffix=".pem", decode=False)
        return self._decryption_key.name

    def client(self, context):
        """
        :type context: multisaml.context.Context
        :rtype: saml2.client.Saml2Client
        """
        callback_url = self.get_callback_url(context)
        if callback_url not in self._clients:
            try:
                sp_config = SPConfig().load(self.sp_config_dict(callback_url))
                self._clients[callback_url] = Saml2Client(sp_config)
            except SAMLError:
                raise
            except Exception as err:
                raise SAMLError("Failed to set up the SAML client for {}".format(callback_url)) from err
        return self._clients[callback_url]

    def _authn_request_kwargs(self):
        kwargs = {}
        if self.options.get("identifier_format"):
            kwargs["nameid_format"] = self.options["identifier_format"]
        if not self.options["disable_requested_authn_context"] and self.options.get("authn_context"):
            kwargs["requested_authn_context"] = requested_authn_context(self.options["authn_context"])
        if self.options["force_authn"]:
            kwargs["force_authn"] = "true"
        return kwargs

    def _remember_request(self, req_id):
        if self.options["validate_in_response_to"]:
            created_at = datetime.now(timezone.utc).isoformat()
            self.cache_provider.save(req_id, created_at)

    def _authorize(self, context, binding, relay_state):
        client = self.client(context)
        try:
            req_id, binding, http_info = client.prepare_for_negotiated_authenticate(
                entityid=self.idp_entity_id,
                relay_state=relay_state or "",
                binding=binding,
                response_binding=BINDING_HTTP_POST,
                sign=bool(self.options.get("key_file")),
                sigalg=self.sign_alg,
                digest_alg=self.digest_alg,
                **self._authn_request_kwargs(),
            )
        except Exception as err:
            lu.multisaml_logging(logger, logging.DEBUG, "Failed to construct the AuthnRequest", context,
                                 exc_info=True)
            raise SAMLError("Failed to construct the AuthnRequest") from err

        self._remember_request(req_id)
        lu.multisaml_logging(logger, logging.DEBUG, "AuthnRequest {} for {}".format(req_id, self.idp_entity_id),
                             context)
        return http_info

    def get_authorize_url(self, context, relay_state=None):
        """
        :type context: multisaml.context.Context
        :type relay_state: str | None
        :rtype: str
        :return: the IdP url carrying the AuthnRequest
        """
        http_info = self._authorize(context, BINDING_HTTP_REDIRECT, relay_state)
        return get_location(http_info)

    def get_authorize_form(self, context, relay_state=None):
        """
        :type context: multisaml.context.Context
        :type relay_state: str | None
        :rtype: str
        :return: an auto submitting html form posting the AuthnRequest
        """
        http_info = self._authorize(context, BINDING_HTTP_POST, relay_state)
        return http_info["data"]

    def _check_in_response_to(self, in_response_to):
        if not self.options["validate_in_response_to"]:
            return
        if not in_response_to or self.cache_provider.get(in_response_to) is None:
            raise SAMLInResponseToError("InResponseTo is not valid")
        self.cache_provider.remove(in_response_to)

    @staticmethod
    def _root_tag(encoded):
        try:
            xml = base64.b64decode(encoded)
            tag = xml_fromstring(xml).tag
        except Exception as err:
            raise SAMLResponseError("SAML message is not valid base64 encoded XML") from err
        return tag.rsplit("}", 1)[-1]

    def validate_post_response(self, context):
        """
        Validates a SAMLResponse received through HTTP-POST.

        :type context: multisaml.context.Context
        :rtype: (dict[str, Any] | None, bool)
        :return: the profile of the user, and whether this was a logout response
        """
        encoded = context.params().get("SAMLResponse")
        if not encoded:
            raise SAMLResponseError("Missing SAMLResponse")

        if self._root_tag(encoded) == "LogoutResponse":
            self._parse_logout_response(context, encoded, BINDING_HTTP_POST)
            return None, True

        client = self.client(context)
        try:
            response = client.parse_authn_request_response(encoded, BINDING_HTTP_POST)
        except Exception as err:
            lu.multisaml_logging(logger, logging.DEBUG, "Failed to parse authn response", context, exc_info=True)
            raise SAMLResponseError("Failed to parse authn response") from err
        if response is None:
            raise SAMLResponseError("Invalid authn response")

        self._check_in_response_to(response.in_response_to)

        try:
            profile = self._profile_from_response(response)
        except Exception as err:
            raise SAMLResponseError("Failed to read the authn response") from err
        return profile, False

    def validate_redirect(self, context):
        """
        Validates a logout message received through HTTP-Redirect.

        :type context: multisaml.context.Context
        :rtype: (dict[str, Any] | None, bool)
        """
        params = context.params()
        if params.get("SAMLResponse"):
            self._parse_logout_response(context, params["SAMLResponse"], BINDING_HTTP_REDIRECT)
            return None, True
        if params.get("SAMLRequest"):
            return self._parse_logout_request(context, params["SAMLRequest"], BINDING_HTTP_REDIRECT), True
        raise SAMLResponseError("Missing SAMLRequest or SAMLResponse")

    def validate_post_request(self, context):
        """
        Validates a LogoutRequest received through HTTP-POST.

        :type context: multisaml.context.Context
        :rtype: (dict[str, Any], bool)
        """
        encoded = context.params().get("SAMLRequest")
        if not encoded:
            raise SAMLResponseError("Missing SAMLRequest")
        return self._parse_logout_request(context, encoded, BINDING_HTTP_POST), True

    def _parse_logout_response(self, context, encoded, binding):
        client = self.client(context)
        try:
            response = client.parse_logout_request_response(encoded, binding)
        except Exception as err:
            raise SAMLResponseError("Failed to parse logout response") from err
        if response is None:
            raise SAMLResponseError("Invalid logout response")
        self._check_in_response_to(response.in_response_to)
        return response

    def _parse_logout_request(self, context, encoded, binding):
        client = self.client(context)
        try:
            request = client.parse_logout_request(encoded, binding)
        except Exception as err:
            raise SAMLResponseError("Failed to parse logout request") from err
        if request is None:
            raise SAMLResponseError("Invalid logout request")

        message = request.message
        name_id = message.name_id
        return {
            "id": message.id,
            "issuer": message.issuer.text if message.issuer is not None else None,
            "name_id": name_id.text if name_id is not None else None,
            "name_id_format": name_id.format if name_id is not None else None,
            "session_index": [si.text for si in message.session_index],
        }

    def _profile_from_response(self, response):
        # falls back to the Issuer of the assertion when the response has none
        issuer = response.issuer() or None
        authn_context_ref, _authorities, authn_instant = next(iter(response.authn_info()), [None, None, None])

        # The SAML response may not include a NameID.
        subject = response.get_subject()
        statements = response.assertion.authn_statement if response.assertion is not None else []
        session_index = next((statement.session_index for statement in statements), None)
        profile = {
            "issuer": issuer,
            "in_response_to": response.in_response_to,
            "session_index": session_index,
            "name_id": subject.text if subject else None,
            "name_id_format": subject.format if subject else None,
            "name_qualifier": subject.name_qualifier if subject else None,
            "sp_name_qualifier": subject.sp_name_qualifier if subject else None,
            "authn_context_class_ref": authn_context_ref,
            "authn_instant": authn_instant,
            "attributes": response.ava,
        }
        return profile

    def get_logout_url(self, context, user, relay_state=None):
        """
        Builds the url of a LogoutRequest for the given user.

        :type context: multisaml.context.Context
        :type user: dict[str, Any]
        :type relay_state: str | None
        :rtype: str
        """
        if not user or not user.get("name_id"):
            raise SAMLError("Unable to logout: the user has no name_id")

        client = self.client(context)
        destination = self.options.get("logout_url") or self.options.get("entry_point")
        name_id = saml.NameID(
            text=user["name_id"],
            format=user.get("name_id_format"),
            name_qualifier=user.get("name_qualifier"),
            sp_name_qualifier=user.get("sp_name_qualifier"),
        )
        session_index = user.get("session_index")
        sign = bool(self.options.get("key_file"))
        try:
            req_id, request = client.create_logout_request(
                destination,
                self.idp_entity_id,
                name_id=name_id,
                session_indexes=[session_index] if session_index else None,
                sign=False,
            )
            http_info = client.apply_binding(
                BINDING_HTTP_REDIRECT, str(request), destination, relay_state or util.rndstr(),
                sign=sign, sigalg=self.sign_alg,
            )
        except Exception as err:
            raise SAMLError("Failed to construct the LogoutRequest") from err

        self._remember_request(req_id)
        return get_location(http_info)

    def get_logout_response_url(self, context, logout_request, relay_state=None):
        """
        Answers a LogoutRequest of the IdP.

        :type context: multisaml.context.Context
        :type logout_request: dict[str, Any]
        :type relay_state: str | None
        :rtype: str
        """
        client = self.client(context)
        destination = self.options.get("logout_url") or self.options.get("entry_point")
        try:
            response = saml_logout_response(client, logout_request, destination)
            http_info = client.apply_binding(
                BINDING_HTTP_REDIRECT, str(response), destination, relay_state or "",
                response=True, sign=bool(self.options.get("key_file")), sigalg=self.sign_alg,
            )
        except Exception as err:
            raise SAMLError("Failed to construct the LogoutResponse") from err
        return get_location(http_info)

    def generate_service_provider_metadata(self, decryption_cert=None, signing_cert=None):
        """
        :type decryption_cert: str | None
        :type signing_cert: str | None
        :rtype: str
        """
        return create_sp_metadata(self.options, decryption_cert=decryption_cert, signing_cert=signing_cert)


def saml_logout_response(client, logout_request, destination):
    """
    A successful LogoutResponse to a LogoutRequest of the IdP.

    :type client: saml2.client.Saml2Client
    :type logout_request: dict[str, Any]
    :type destination: str
    :rtype: saml2.samlp.LogoutResponse
    """
    return samlp.LogoutResponse(
        id="_" + util.rndstr(),
        version=VERSION,
        issue_instant=instant(),
        destination=destination,
        in_response_to=logout_request["id"],
        issuer=saml.Issuer(text=client.config.entityid, format=saml.NAMEID_FORMAT_ENTITY),
        status=success_status_factory(),
    )
