"""
This module contains methods to load, verify and merge the options of a saml strategy.
"""
import importlib
import logging
import os
import os.path
from collections.abc import Mapping
from types import MappingProxyType

from .cache import DEFAULT_KEY_EXPIRATION_PERIOD_MS
from .cache import InMemoryCacheProvider
from .exception import MultiSAMLConfigurationError
from .yaml import YAMLError
from .yaml import load as yaml_load

logger = logging.getLogger(__name__)

KEY_GET_SAML_OPTIONS = "get_saml_options"
KEY_REQUEST_ID_EXPIRATION_PERIOD_MS = "request_id_expiration_period_ms"
KEY_CACHE_PROVIDER = "cache_provider"


class StrategyConfig(Mapping):
    """
    The process wide options of a strategy. Read-only once built.

    Defaults for the request id expiration and the cache provider are resolved
    into a fresh mapping, the options given by the caller are never modified.
    """
    sensitive_keys = ["decryption_pvk"]

    def __init__(self, config):
        """
        :type config: str | dict | StrategyConfig

        :param config: A dict, the path to a YAML file, or a YAML string
        """
        options = None
        for parser in [self._load_dict, self._load_yaml]:
            options = parser(config)
            if options is not None:
                break
        if options is None:
            raise MultiSAMLConfigurationError("Missing configuration or unknown format")

        for key in StrategyConfig.sensitive_keys:
            val = os.environ.get("MULTISAML_{key}".format(key=key.upper()))
            if val:
                options[key] = val

        resolver = options.get(KEY_GET_SAML_OPTIONS)
        if isinstance(resolver, str):
            options[KEY_GET_SAML_OPTIONS] = load_callable(resolver)

        expiration = options.get(KEY_REQUEST_ID_EXPIRATION_PERIOD_MS)
        if expiration is None:
            expiration = DEFAULT_KEY_EXPIRATION_PERIOD_MS
        elif isinstance(expiration, bool) or not isinstance(expiration, int) or expiration <= 0:
            raise MultiSAMLConfigurationError(
                "'{}' must be a positive number of milliseconds, got {!r}".format(
                    KEY_REQUEST_ID_EXPIRATION_PERIOD_MS, expiration))
        options[KEY_REQUEST_ID_EXPIRATION_PERIOD_MS] = expiration

        if options.get(KEY_CACHE_PROVIDER) is None:
            options[KEY_CACHE_PROVIDER] = InMemoryCacheProvider(key_expiration_period_ms=expiration)

        self._options = MappingProxyType(options)

    @classmethod
    def from_yaml(cls, config):
        """
        :type config: str
        :rtype: StrategyConfig

        :param config: path to a YAML file, or a YAML string
        """
        if not isinstance(config, str):
            raise MultiSAMLConfigurationError("YAML configuration must be a path or a string")
        return cls(config)

    def merge(self, tenant_options):
        """
        Shallow merge of the tenant options over these options. Keys of the
        tenant win, nested values are replaced as a whole. A tenant without a
        cache_provider shares the one of these options.

        :type tenant_options: Mapping | None
        :rtype: dict

        :param tenant_options: options resolved for a single request
        :return: A new dict, neither input is modified
        """
        if tenant_options is None:
            tenant_options = {}
        if not isinstance(tenant_options, Mapping):
            raise TypeError(
                "Tenant options must be a mapping, got {}".format(type(tenant_options).__name__))
        merged = {**self._options, **tenant_options}
        if merged.get(KEY_CACHE_PROVIDER) is None:
            merged[KEY_CACHE_PROVIDER] = self._options[KEY_CACHE_PROVIDER]
        return merged

    def __getitem__(self, item):
        return self._options[item]

    def __iter__(self):
        return iter(self._options)

    def __len__(self):
        return len(self._options)

    def __repr__(self):
        keys = sorted(k for k in self._options if k not in StrategyConfig.sensitive_keys)
        return "StrategyConfig({})".format(", ".join(keys))

    def _load_dict(self, config):
        """
        :type config: Mapping
        :rtype: dict | None
        """
        if isinstance(config, Mapping):
            return dict(config)

        return None

    def _load_yaml(self, config_file):
        """
        Load config from yaml file or string

        :type config_file: str
        :rtype: dict | None

        :param config_file: config to load. Can be file path or yaml string
        :return: Loaded config
        """
        if not isinstance(config_file, str):
            return None

        try:
            if os.path.isfile(config_file):
                with open(os.path.abspath(config_file)) as f:
                    loaded = yaml_load(f.read())
            else:
                loaded = yaml_load(config_file)
        except YAMLError as exc:
            logger.error("Could not parse config as YAML: {}".format(exc))
            if hasattr(exc, 'problem_mark'):
                mark = exc.problem_mark
                logger.error("Error position: ({line}:{column})".format(line=mark.line + 1, column=mark.column + 1))
            raise MultiSAMLConfigurationError("Could not parse config as YAML") from exc
        except IOError as e:
            logger.error("Could not open config file: {}".format(e))
            raise MultiSAMLConfigurationError("Could not open config file") from e

        return loaded if isinstance(loaded, dict) else None


def load_config(config):
    """
    :type config: str | dict | StrategyConfig
    :rtype: StrategyConfig
    """
    if isinstance(config, StrategyConfig):
        return config
    return StrategyConfig(config)


def load_callable(path):
    """
    Import a callable given as 'package.module:name'.

    :type path: str
    :rtype: Callable
    """
    module_name, sep, attr = path.partition(":")
    if not sep or not module_name or not attr:
        raise MultiSAMLConfigurationError(
            "'{}' is not of the form 'package.module:function'".format(path))
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise MultiSAMLConfigurationError("Could not import module '{}'".format(module_name)) from e
    try:
        func = getattr(module, attr)
    except AttributeError as e:
        raise MultiSAMLConfigurationError("Module '{}' has no attribute '{}'".format(module_name, attr)) from e

    logger.debug("Loaded {} from {}".format(attr, module_name))
    return func
