"""
YAML loading for strategy options.

Values tagged with !ENV are read from the environment variable named by the
scalar, values tagged with !ENVFILE are read from the file that environment
variable points to.
"""
import os

from yaml import SafeLoader as _safe_loader
from yaml import YAMLError
from yaml import safe_load as load

__all__ = ["YAMLError", "load", "TAG_ENV", "TAG_ENVFILE"]

TAG_ENV = "!ENV"
TAG_ENVFILE = "!ENVFILE"


def _env_value(loader, node):
    raw_value = loader.construct_scalar(node)
    value = os.environ.get(raw_value)
    if value is None:
        msg = "Environment variable {name} is not set for {tag}".format(name=raw_value, tag=node.tag)
        raise YAMLError(msg)
    return value


def _constructor_env_variables(loader, node):
    """
    :param yaml.Loader loader: the yaml loader
    :param node: the current node in the yaml
    :return: value of the environment variable
    """
    return _env_value(loader, node)


def _constructor_envfile_variables(loader, node):
    """
    :param yaml.Loader loader: the yaml loader
    :param node: the current node in the yaml
    :return: content of the file pointed to by the environment variable
    """
    filepath = _env_value(loader, node)
    try:
        with open(filepath, "r") as fd:
            return fd.read()
    except IOError as e:
        msg = "Cannot read {path} for {tag}".format(path=filepath, tag=node.tag)
        raise YAMLError(msg) from e


_safe_loader.add_constructor(TAG_ENV, _constructor_env_variables)
_safe_loader.add_constructor(TAG_ENVFILE, _constructor_envfile_variables)
