import asyncio

import click

from ..context import Context
from ..exception import MultiSAMLError
from ..multi_strategy import MultiSamlStrategy


def _read(path):
    if not path:
        return None
    with open(path) as f:
        return f.read()


def _verify_not_used(*args):
    raise RuntimeError("verify is not called while generating metadata")


def build_context(host=None, path=None, headers=()):
    """
    A request context standing in for a request of the tenant.

    :type host: str | None
    :type path: str | None
    :type headers: Sequence[str]
    :rtype: multisaml.context.Context
    """
    context = Context()
    context.request_method = "GET"
    if path:
        context.path = path
    for header in headers:
        name, sep, value = header.partition("=")
        if not sep:
            raise click.BadParameter("'{}' is not of the form NAME=VALUE".format(header), param_hint="--header")
        context.http_headers[name.strip()] = value.strip()
    if host:
        context.http_headers["Host"] = host
    return context


def create_tenant_metadata(strategy_conf, context, decryption_cert=None, signing_cert=None):
    """
    Generates the SP metadata for the tenant the given request belongs to.

    :type strategy_conf: str | dict
    :type context: multisaml.context.Context
    :type decryption_cert: str | None
    :type signing_cert: str | None
    :rtype: str
    """
    strategy = MultiSamlStrategy(strategy_conf, _verify_not_used)
    return asyncio.run(
        strategy.generate_service_provider_metadata_async(context, decryption_cert, signing_cert)
    )


@click.command()
@click.argument("strategy_conf")
@click.option("--host", type=click.STRING, default=None, help="Host header of the tenant request.")
@click.option("--path", type=click.STRING, default=None, help="Path of the tenant request.")
@click.option("--header", "headers", multiple=True, help="Extra request header, NAME=VALUE.")
@click.option("--decryption-cert", type=click.Path(exists=True, dir_okay=False), default=None,
              help="Certificate the IdP should encrypt assertions with.")
@click.option("--signing-cert", type=click.Path(exists=True, dir_okay=False), default=None,
              help="Certificate the SP signs its requests with.")
@click.option("--output", type=click.Path(dir_okay=False, writable=True), default=None,
              help="Where to write the metadata, stdout if not given.")
def construct_tenant_metadata(strategy_conf, host, path, headers, decryption_cert, signing_cert, output):
    context = build_context(host, path, headers)
    try:
        metadata = create_tenant_metadata(strategy_conf, context, _read(decryption_cert), _read(signing_cert))
    except MultiSAMLError as err:
        raise click.ClickException(str(err)) from err

    if output:
        click.echo("Writing metadata to '{}'".format(output), err=True)
        with open(output, "w") as f:
            f.write(metadata)
    else:
        click.echo(metadata)
