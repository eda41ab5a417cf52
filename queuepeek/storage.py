import logging
from typing import Dict, List, Optional, Sequence, Set, Tuple

import redis

from .errors import ConfigError, DecodeError
from .models import DEFAULTS

logger = logging.getLogger(__name__)


def parse_endpoint(endpoint: Optional[str]) -> Tuple[str, int]:
    """``host[:port]`` -> (host, port); port defaults to 6379."""
    endpoint = (endpoint or "").strip()
    if not endpoint:
        return DEFAULTS["host"], DEFAULTS["port"]
    host, sep, port = endpoint.rpartition(":")
    if not sep:
        return endpoint, DEFAULTS["port"]
    if not host or not port.isdigit():
        raise ConfigError(f"Invalid redis endpoint {endpoint!r} (expected host:port)")
    return host, int(port)


class Store:
    """
    The handful of Redis reads/writes queuepeek needs, nothing more.
    Each call is one round trip; no pipelining and no retries.
    """

    def __init__(self, client: redis.Redis):
        self.client = client

    @classmethod
    def connect(cls, endpoint: Optional[str] = None) -> "Store":
        host, port = parse_endpoint(endpoint)
        logger.debug("connecting to redis at %s:%s", host, port)
        return cls(redis.Redis(host=host, port=port, decode_responses=True))

    def members_of_set(self, key: str) -> Set[str]:
        return set(self.client.smembers(key))

    def cardinality_of_set(self, key: str) -> int:
        return int(self.client.scard(key))

    def range_of_list(self, key: str, start: int = 0, end: int = -1) -> List[str]:
        return list(self.client.lrange(key, start, end))

    def length_of_list(self, key: str) -> int:
        return int(self.client.llen(key))

    def get(self, key: str) -> Optional[str]:
        return self.client.get(key)

    def batch_get(self, keys: Sequence[str]) -> Dict[str, Optional[str]]:
        keys = list(keys)
        if not keys:
            return {}
        return dict(zip(keys, self.client.mget(keys)))

    def get_counter(self, key: str) -> int:
        value = self.get(key)
        if not value:
            return 0
        try:
            return int(value)
        except ValueError as e:
            raise DecodeError(f"Counter {key} is not an integer: {value!r}") from e

    def remove_from_set(self, key: str, member: str) -> None:
        self.client.srem(key, member)

    def delete(self, key: str) -> None:
        self.client.delete(key)
