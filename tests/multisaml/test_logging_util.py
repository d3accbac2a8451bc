import logging

from multisaml.context import Context
from multisaml.logging_util import get_request_id
from multisaml.logging_util import multisaml_logging


def test_get_request_id():
    context = Context()
    assert get_request_id(context) == context.request_id
    assert get_request_id(None) == "UNKNOWN"


def test_message_is_prefixed_with_request_id(caplog):
    logger = logging.getLogger("test_multisaml_logging")
    context = Context()

    with caplog.at_level(logging.DEBUG, logger="test_multisaml_logging"):
        multisaml_logging(logger, logging.INFO, "resolved tenant", context)

    assert caplog.messages == ["[{}] resolved tenant".format(context.request_id)]
    assert caplog.records[0].levelno == logging.INFO
