def get_location(http_args):
    """
    :type http_args: dict
    :rtype: str
    :return: The Location header of a redirect binding message
    """
    headers = dict(http_args["headers"])
    return str(headers["Location"])
