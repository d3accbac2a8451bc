"""
Storage for the ids of outstanding authentication requests.

The ids are kept so that the InResponseTo of a SAML response can be matched
against a request this SP actually sent.
"""
import logging
import time

logger = logging.getLogger(__name__)

DEFAULT_KEY_EXPIRATION_PERIOD_MS = 28800000  # 8 hours


def now_ms():
    return int(time.time() * 1000)


class CacheProvider(object):
    """
    Base class for request id caches.

    Implementations must never return an entry older than their expiration
    period from get or remove.
    """

    def save(self, key, value):
        """
        Store value under key unless the key is already present.

        :type key: str
        :type value: str
        :rtype: dict | None

        :return: the stored item or None if the key already existed
        """
        raise NotImplementedError()

    def get(self, key):
        """
        :type key: str
        :rtype: str | None
        """
        raise NotImplementedError()

    def remove(self, key):
        """
        :type key: str
        :rtype: str | None

        :return: the removed key or None if there was nothing to remove
        """
        raise NotImplementedError()


class InMemoryCacheProvider(CacheProvider):
    """
    In-memory cache. Expired entries are ignored on read and purged on save.
    """

    def __init__(self, key_expiration_period_ms=DEFAULT_KEY_EXPIRATION_PERIOD_MS, clock=now_ms):
        """
        :type key_expiration_period_ms: int
        :type clock: () -> int

        :param key_expiration_period_ms: how long an entry stays valid
        :param clock: returns the current time in milliseconds
        """
        self.key_expiration_period_ms = key_expiration_period_ms
        self._clock = clock
        self._items = {}

    def _is_expired(self, item):
        return self._clock() - item["created_at"] >= self.key_expiration_period_ms

    def _live_item(self, key):
        item = self._items.get(key)
        if item is None:
            return None
        if self._is_expired(item):
            del self._items[key]
            return None
        return item

    def save(self, key, value):
        self.purge_expired()
        if key in self._items:
            return None

        item = {"value": value, "created_at": self._clock()}
        self._items[key] = item
        return item

    def get(self, key):
        item = self._live_item(key)
        return item["value"] if item else None

    def remove(self, key):
        item = self._live_item(key)
        if item is None:
            return None
        del self._items[key]
        return key

    def purge_expired(self):
        """
        Drop every expired entry.

        :rtype: int
        :return: number of purged entries
        """
        expired = [key for key, item in self._items.items() if self._is_expired(item)]
        for key in expired:
            del self._items[key]
        if expired:
            logger.debug("Purged {} expired request ids".format(len(expired)))
        return len(expired)

    def __len__(self):
        return len(self._items)
