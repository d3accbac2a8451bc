# -*- coding: utf-8 -*-
"""
    multisaml
    ~~~~~~~~~~~~~~~~

    SAML service provider strategies. MultiSamlStrategy resolves the IdP
    options per request, so one service can serve many SAML tenants.

    :license: APACHE 2.0, see LICENSE for more details.
"""
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _resolve_package_version

from .cache import CacheProvider
from .cache import InMemoryCacheProvider
from .context import Context
from .multi_strategy import MultiSamlStrategy
from .strategy import AuthenticationActions
from .strategy import SamlStrategy

__all__ = [
    "AuthenticationActions",
    "CacheProvider",
    "Context",
    "InMemoryCacheProvider",
    "MultiSamlStrategy",
    "SamlStrategy",
]


def _parse_version():
    try:
        value = _resolve_package_version("multisaml")
    except PackageNotFoundError:
        value = "0.0.0"
    return value


version = _parse_version()
