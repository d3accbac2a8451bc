from typing import Any, Optional
from uuid import uuid4


class Context(object):
    """
    Holds the data of the inbound request handed to a strategy
    """

    KEY_TENANT = "tenant"

    def __init__(self) -> None:
        self.request_id: str = uuid4().urn
        self._path: Optional[str] = None
        # POST body or GET query parameters, depending on request_method
        self.request: dict[str, Any] = {}
        self.request_method = None
        self.qs_params: dict[str, Any] = {}
        self.http_headers: dict[str, str] = {}
        self.user = None
        # This dict is a data carrier between the web adapter and the resolver.
        self.internal_data: dict[str, Any] = {}

    @property
    def path(self) -> Optional[str]:
        """
        Get the path

        :return: context path
        """
        return self._path

    @path.setter
    def path(self, p: str) -> None:
        """
        Inserts a path to the context.

        :type p: str

        :param p: The request path, always starting with '/'
        :return: None
        """
        if not p:
            raise ValueError("path can't be set to None")
        elif not p.startswith("/"):
            raise ValueError("path must start with '/'")
        self._path = p

    @property
    def host(self) -> Optional[str]:
        return self.get_header("Host")

    @property
    def protocol(self) -> str:
        return self.get_header("X-Forwarded-Proto") or "http"

    def get_header(self, name: str) -> Optional[str]:
        """
        Case insensitive lookup of a request header
        """
        name = name.lower()
        for key, value in self.http_headers.items():
            if key.lower() == name:
                return value
        return None

    def params(self) -> dict[str, Any]:
        """
        Merged view of the query string and the body parameters, body wins.
        """
        return {**(self.qs_params or {}), **(self.request or {})}

    def decorate(self, key: str, value: Any) -> "Context":
        """
        Add information to the context
        """
        self.internal_data[key] = value
        return self

    def get_decoration(self, key: str) -> Any:
        """
        Retrieve information from the context
        """

        value = self.internal_data.get(key)
        return value
