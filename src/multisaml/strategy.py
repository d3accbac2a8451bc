"""
The single-tenant SAML authentication strategy.
"""
import logging

import multisaml.logging_util as lu
from .config import load_config
from .exception import MultiSAMLConfigurationError
from .response import Response
from .saml import SAML

logger = logging.getLogger(__name__)

AUTHN_REQUEST_BINDINGS = ["HTTP-Redirect", "HTTP-POST"]


class AuthenticationActions(object):
    """
    Continuations of a single authenticate call.

    The web adapter creates one instance per request; exactly one of the
    methods is called when the strategy is done with the request.
    """

    def success(self, user, info=None):
        """
        :param user: the user returned by the verify function
        :param info: additional information returned by the verify function
        """
        raise NotImplementedError()

    def fail(self, challenge=None, status=None):
        raise NotImplementedError()

    def redirect(self, url, status=302):
        raise NotImplementedError()

    def send(self, response):
        """
        :type response: multisaml.response.Response
        """
        raise NotImplementedError()

    def pass_(self):
        raise NotImplementedError()

    def error(self, err):
        """
        :type err: Exception
        """
        raise NotImplementedError()


class SamlStrategy(object):
    """
    SAML service provider strategy bound to a single IdP.

    The protocol work is done by a SAML engine handed to each operation, the
    strategy itself only holds settings fixed at construction.
    """
    name = "saml"

    def __init__(self, options, verify):
        """
        :type options: dict[str, Any] | str | multisaml.config.StrategyConfig
        :type verify: Callable

        :param options: strategy and engine options
        :param verify: called as verify(profile, done), or as
        verify(context, profile, done) when pass_req_to_callback is set;
        done(err, user, info) reports the outcome
        """
        if not callable(verify):
            raise MultiSAMLConfigurationError("SAML authentication strategy requires a verify function")

        self._options = load_config(options)
        self.name = self._options.get("name") or SamlStrategy.name
        self._verify = verify
        self._pass_req_to_callback = bool(self._options.get("pass_req_to_callback"))
        self._authn_request_binding = self._options.get("authn_request_binding") or "HTTP-Redirect"
        if self._authn_request_binding not in AUTHN_REQUEST_BINDINGS:
            raise MultiSAMLConfigurationError(
                "authn_request_binding must be one of {}".format(AUTHN_REQUEST_BINDINGS))

        self._saml = self._create_default_saml()

    def _create_default_saml(self):
        return SAML(self._options)

    async def authenticate(self, context, actions, options=None):
        """
        Authenticates the request with the engine of this strategy.

        :type context: multisaml.context.Context
        :type actions: multisaml.strategy.AuthenticationActions
        :type options: dict[str, Any] | None
        """
        self._authenticate(self._saml, context, actions, options)

    async def logout(self, context, callback):
        """
        :type context: multisaml.context.Context
        :type callback: (Exception | None, str | None) -> None

        :param callback: called with (error, url of the LogoutRequest)
        """
        self._logout(self._saml, context, callback)

    def generate_service_provider_metadata(self, decryption_cert=None, signing_cert=None):
        """
        :type decryption_cert: str | None
        :type signing_cert: str | None
        :rtype: str
        """
        return self._generate_service_provider_metadata(self._saml, decryption_cert, signing_cert)

    def _authenticate(self, saml, context, actions, options=None):
        """
        :type saml: multisaml.saml.SAML
        :type context: multisaml.context.Context
        :type actions: multisaml.strategy.AuthenticationActions
        :type options: dict[str, Any] | None

        :param saml: the engine to run the handshake with
        """
        options = options or {}
        params = context.params()

        if params.get("SAMLResponse") or params.get("SAMLRequest"):
            try:
                profile, logged_out = self._validate(saml, context)
            except Exception as err:
                lu.multisaml_logging(logger, logging.DEBUG, "Rejected SAML message: {}".format(err), context)
                actions.error(err)
                return
            self._handle_validated(saml, context, actions, profile, logged_out)
            return

        fallback = options.get("saml_fallback", "login-request")
        try:
            if fallback == "login-request":
                self._request_login(saml, context, actions, options)
            elif fallback == "logout-request":
                actions.redirect(saml.get_logout_url(context, context.user, self._relay_state(context, options)))
            else:
                actions.fail("Unknown saml_fallback '{}'".format(fallback), 400)
        except Exception as err:
            actions.error(err)

    def _validate(self, saml, context):
        params = context.params()
        if context.request_method == "POST":
            if params.get("SAMLRequest"):
                return saml.validate_post_request(context)
            return saml.validate_post_response(context)
        return saml.validate_redirect(context)

    def _handle_validated(self, saml, context, actions, profile, logged_out):
        if logged_out:
            context.user = None
            if profile:
                relay_state = context.params().get("RelayState")
                try:
                    url = saml.get_logout_response_url(context, profile, relay_state)
                except Exception as err:
                    actions.error(err)
                    return
                actions.redirect(url)
                return
            actions.pass_()
            return

        def verified(err, user=None, info=None):
            if err:
                actions.error(err)
            elif not user:
                actions.fail(info, 401)
            else:
                context.user = user
                actions.success(user, info)

        lu.multisaml_logging(logger, logging.INFO, "Verifying profile from {}".format(profile["issuer"]), context)
        try:
            if self._pass_req_to_callback:
                self._verify(context, profile, verified)
            else:
                self._verify(profile, verified)
        except Exception as err:
            lu.multisaml_logging(logger, logging.DEBUG, "verify failed: {}".format(err), context)
            actions.error(err)

    def _relay_state(self, context, options):
        additional_params = options.get("additional_params") or {}
        return additional_params.get("RelayState") or context.params().get("RelayState")

    def _request_login(self, saml, context, actions, options):
        relay_state = self._relay_state(context, options)
        if self._authn_request_binding == "HTTP-POST":
            form = saml.get_authorize_form(context, relay_state)
            actions.send(Response(form))
        else:
            actions.redirect(saml.get_authorize_url(context, relay_state))

    def _logout(self, saml, context, callback):
        """
        :type saml: multisaml.saml.SAML
        :type context: multisaml.context.Context
        :type callback: (Exception | None, str | None) -> None
        """
        try:
            url = saml.get_logout_url(context, context.user)
        except Exception as err:
            callback(err, None)
            return
        callback(None, url)

    def _generate_service_provider_metadata(self, saml, decryption_cert, signing_cert):
        """
        :type saml: multisaml.saml.SAML
        :type decryption_cert: str | None
        :type signing_cert: str | None
        :rtype: str
        """
        return saml.generate_service_provider_metadata(decryption_cert, signing_cert)
