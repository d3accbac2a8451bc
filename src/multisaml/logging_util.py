LOG_FMT = "[{id}] {message}"


def get_request_id(context):
    request_id = getattr(context, "request_id", None) or "UNKNOWN"
    return request_id


def multisaml_logging(logger, level, message, context, **kwargs):
    """
    Adds a request ID to the message.

    :type logger: logging.Logger
    :type level: int
    :type message: str
    :type context: multisaml.context.Context

    :param logger: Logger to use
    :param level: Logger level (ex: logging.DEBUG/logging.WARN/...)
    :param message: Message
    :param context: The current request context
    :param kwargs: set exc_info=True to get an exception stack trace in the log
    """
    request_id = get_request_id(context)
    logline = LOG_FMT.format(id=request_id, message=message)
    logger.log(level, logline, **kwargs)
