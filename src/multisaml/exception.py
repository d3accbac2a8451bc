"""
Exceptions for multisaml
"""


class MultiSAMLError(Exception):
    """
    Base multisaml exception
    """
    pass


class MultiSAMLConfigurationError(MultiSAMLError):
    """
    Raised when a strategy is constructed with an invalid configuration
    """
    pass


class MultiSAMLUnsupportedOperationError(MultiSAMLError):
    """
    Raised when calling an entry point that can not be served by a
    multi-tenant strategy.
    """
    pass


class SAMLError(MultiSAMLError):
    """
    Raised by the protocol engine when a SAML message can not be produced or
    validated.
    """
    pass


class SAMLResponseError(SAMLError):
    """
    The SAML response/request sent back by the IdP was missing or invalid.
    """
    pass


class SAMLInResponseToError(SAMLResponseError):
    """
    The InResponseTo of a response does not match an outstanding request.
    """
    pass
