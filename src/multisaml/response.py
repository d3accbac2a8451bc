"""
Response objects handed to the web adapter through the strategy actions
"""


class Response(object):
    """
    A response object
    """
    _status = "200 OK"
    _content_type = "text/html"

    def __init__(self, message=None, status=None, headers=None, content=None):
        """
        :type message: str
        :type status: str
        :type headers: list[(str, str)]
        :type content: str

        :param message: The response body
        :param status: The response status line
        :param headers: A list of headers
        :param content: The content type
        """
        _content_type = content if content is not None else self._content_type
        self.status = status if status is not None else self._status
        self.headers = list(headers) if headers is not None else []
        self.message = message

        should_add_content_type = not any(header[0].lower() == "content-type" for header in self.headers)
        if should_add_content_type:
            self.headers.append(("Content-Type", _content_type))

    def get_header(self, name):
        name = name.lower()
        for key, value in self.headers:
            if key.lower() == name:
                return value
        return None

    def __call__(self, environ, start_response):
        """
        WSGI application interface.

        :type environ: dict[str, str]
        :type start_response: (str, list[(str, str)]) -> None
        """
        start_response(self.status, self.headers)
        body = self.message if isinstance(self.message, list) else [self.message or ""]
        return [part.encode("utf-8") if isinstance(part, str) else part for part in body]
