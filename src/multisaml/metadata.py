"""
Builds the SAML metadata documents used by the protocol engine: the metadata
of this service provider, and the metadata of an IdP described only by its
entry point and signing certificate.
"""
import logging
import re

from saml2 import BINDING_HTTP_POST
from saml2 import BINDING_HTTP_REDIRECT
from saml2 import md
from saml2 import samlp
from saml2 import xmldsig as ds
from saml2 import xmlenc

from .exception import SAMLError

logger = logging.getLogger(__name__)

NSPAIR = {"md": md.NAMESPACE, "ds": ds.NAMESPACE}

ENCRYPTION_ALGORITHMS = [
    xmlenc.NAMESPACE + "aes256-cbc",
    xmlenc.NAMESPACE + "aes128-cbc",
    xmlenc.NAMESPACE + "tripledes-cbc",
]

_PEM_ARMOR = re.compile(r"-----(BEGIN|END)[^-]*-----")


def strip_certificate(cert):
    """
    Removes the PEM armor and all whitespace from a certificate.

    :type cert: str
    :rtype: str
    """
    return "".join(_PEM_ARMOR.sub("", cert).split())


def _key_descriptor(cert, use, encryption_methods=None):
    key_info = ds.KeyInfo(x509_data=[ds.X509Data(x509_certificate=ds.X509Certificate(text=strip_certificate(cert)))])
    return md.KeyDescriptor(
        use=use,
        key_info=key_info,
        encryption_method=[md.EncryptionMethod(algorithm=alg) for alg in encryption_methods or []],
    )


def _descriptor_id(entity_id):
    return re.sub(r"\W", "_", entity_id)


def _to_string(entity_descriptor):
    xml = entity_descriptor.to_string(NSPAIR)
    return xml.decode("utf-8") if isinstance(xml, bytes) else xml


def create_sp_metadata(options, decryption_cert=None, signing_cert=None):
    """
    Creates the metadata of this service provider.

    :type options: dict[str, Any]
    :type decryption_cert: str | None
    :type signing_cert: str | None
    :rtype: str

    :param options: the engine options
    :param decryption_cert: certificate the IdP should encrypt assertions with
    :param signing_cert: certificate this SP signs its requests with
    :return: the metadata document
    """
    callback_url = options.get("callback_url")
    if not callback_url:
        raise SAMLError("Unable to generate service provider metadata when callback_url option is not set")
    if options.get("decryption_pvk") and not decryption_cert:
        raise SAMLError("Missing decryption_cert while generating metadata for decrypting service provider")
    if options.get("key_file") and not signing_cert:
        raise SAMLError("Missing signing_cert while generating metadata for signing service provider messages")

    key_descriptors = []
    if signing_cert:
        key_descriptors.append(_key_descriptor(signing_cert, "signing"))
    if decryption_cert:
        key_descriptors.append(_key_descriptor(decryption_cert, "encryption", ENCRYPTION_ALGORITHMS))

    single_logout_service = []
    if options.get("logout_callback_url"):
        single_logout_service.append(
            md.SingleLogoutService(binding=BINDING_HTTP_POST, location=options["logout_callback_url"]))

    name_id_format = []
    if options.get("identifier_format"):
        name_id_format.append(md.NameIDFormat(text=options["identifier_format"]))

    spsso = md.SPSSODescriptor(
        protocol_support_enumeration=samlp.NAMESPACE,
        authn_requests_signed="true" if signing_cert else "false",
        want_assertions_signed="true" if options.get("want_assertions_signed") else "false",
        key_descriptor=key_descriptors,
        single_logout_service=single_logout_service,
        name_id_format=name_id_format,
        assertion_consumer_service=[
            md.AssertionConsumerService(index="1", is_default="true", binding=BINDING_HTTP_POST,
                                        location=callback_url)
        ],
    )
    issuer = options["issuer"]
    entity_descriptor = md.EntityDescriptor(entity_id=issuer, id=_descriptor_id(issuer), spsso_descriptor=[spsso])
    return _to_string(entity_descriptor)


def create_idp_metadata(entity_id, entry_point, logout_url=None, certs=None):
    """
    Describes an IdP that is only known by its single sign-on url and signing
    certificates.

    :type entity_id: str
    :type entry_point: str
    :type logout_url: str | None
    :type certs: list[str] | None
    :rtype: str
    """
    if not entry_point:
        raise SAMLError("entry_point is required when no idp_metadata is given")

    logout_url = logout_url or entry_point
    idpsso = md.IDPSSODescriptor(
        protocol_support_enumeration=samlp.NAMESPACE,
        key_descriptor=[_key_descriptor(cert, "signing") for cert in certs or []],
        single_sign_on_service=[
            md.SingleSignOnService(binding=binding, location=entry_point)
            for binding in (BINDING_HTTP_REDIRECT, BINDING_HTTP_POST)
        ],
        single_logout_service=[
            md.SingleLogoutService(binding=binding, location=logout_url)
            for binding in (BINDING_HTTP_REDIRECT, BINDING_HTTP_POST)
        ],
    )
    entity_descriptor = md.EntityDescriptor(entity_id=entity_id, idpsso_descriptor=[idpsso])
    logger.debug("Synthesized metadata for IdP {}".format(entity_id))
    return _to_string(entity_descriptor)
