"""
A SAML strategy serving many IdPs.

The SAML options are resolved for every request by the get_saml_options
function of the strategy options, merged over the process wide options, and
a new engine is built for that request only.
"""
import inspect
import logging

import multisaml.logging_util as lu
from . import util
from .config import KEY_GET_SAML_OPTIONS
from .config import load_config
from .exception import MultiSAMLConfigurationError
from .exception import MultiSAMLUnsupportedOperationError
from .saml import SAML
from .strategy import SamlStrategy

logger = logging.getLogger(__name__)


class MultiSamlStrategy(SamlStrategy):
    """
    Multi-tenant SAML strategy.

    get_saml_options(context) is awaited once per call and returns the options
    of the tenant the request belongs to. Options not returned by it fall back
    to the options given to the strategy.
    """

    def __init__(self, options, verify):
        """
        :type options: dict[str, Any] | str | multisaml.config.StrategyConfig
        :type verify: Callable

        :param options: strategy options; must hold a get_saml_options function
        :param verify: see multisaml.strategy.SamlStrategy
        """
        if not options:
            raise MultiSAMLConfigurationError("Please provide a get_saml_options function")
        config = load_config(options)
        if not callable(config.get(KEY_GET_SAML_OPTIONS)):
            raise MultiSAMLConfigurationError("Please provide a get_saml_options function")

        super().__init__(config, verify)

    def _create_default_saml(self):
        # engines are built per call
        return None

    async def _get_tenant_options(self, context):
        tenant_options = self._options[KEY_GET_SAML_OPTIONS](context)
        if inspect.isawaitable(tenant_options):
            tenant_options = await tenant_options
        return tenant_options

    def _create_saml(self, tenant_options, context=None):
        """
        Builds the engine of one call.

        :type tenant_options: collections.abc.Mapping | None
        :rtype: multisaml.saml.SAML
        """
        merged = self._options.merge(tenant_options)
        msg = "Tenant options override: {}".format(util.describe_keys(tenant_options or {}))
        lu.multisaml_logging(logger, logging.DEBUG, msg, context)
        return SAML(merged)

    async def _resolve_saml(self, context):
        tenant_options = await self._get_tenant_options(context)
        return self._create_saml(tenant_options, context)

    async def authenticate(self, context, actions, options=None):
        """
        :type context: multisaml.context.Context
        :type actions: multisaml.strategy.AuthenticationActions
        :type options: dict[str, Any] | None
        """
        try:
            saml = await self._resolve_saml(context)
        except Exception as err:
            lu.multisaml_logging(logger, logging.DEBUG, "Resolving the SAML options failed", context)
            actions.error(err)
            return
        self._authenticate(saml, context, actions, options)

    async def logout(self, context, callback):
        """
        :type context: multisaml.context.Context
        :type callback: (Exception | None, str | None) -> None
        """
        try:
            saml = await self._resolve_saml(context)
        except Exception as err:
            lu.multisaml_logging(logger, logging.DEBUG, "Resolving the SAML options failed", context)
            callback(err, None)
            return
        self._logout(saml, context, callback)

    def generate_service_provider_metadata(self, *args, **kwargs):
        """
        Not available: the tenant can only be known from a request.
        """
        raise MultiSAMLUnsupportedOperationError("Use generate_service_provider_metadata_async method instead")

    async def generate_service_provider_metadata_async(self, context, decryption_cert=None, signing_cert=None):
        """
        Generates the metadata of this service provider for the tenant of the
        request.

        :type context: multisaml.context.Context
        :type decryption_cert: str | None
        :type signing_cert: str | None
        :rtype: str
        """
        saml = await self._resolve_saml(context)
        return self._generate_service_provider_metadata(saml, decryption_cert, signing_cert)
