"""Durable store boundary: dedup membership set, stream, consumer group.

The gateway talks to the store only through :class:`StreamStore`.
:class:`RedisStreamStore` is the production implementation on top of
``redis.asyncio`` and translates ``redis`` exceptions into
:class:`~jobstream.errors.ActionableError` so callers route on
``error_type`` (CONNECTION aborts a run, STORE costs one listing).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

import redis.asyncio as redis_async
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError, ResponseError
from redis.exceptions import TimeoutError as RedisTimeoutError

from jobstream.errors import ActionableError
from jobstream.models import GroupCreateResult

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger(__name__)

# Redis reply prefix when XGROUP CREATE targets an existing group
_BUSYGROUP = "BUSYGROUP"


class StreamStore(Protocol):
    """Capability interface over the external store."""

    async def membership_contains(self, set_name: str, value: str) -> bool: ...

    async def membership_add(self, set_name: str, value: str) -> bool:
        """Insert *value*; return ``True`` if it was not already a member."""
        ...

    async def stream_append(self, stream_name: str, fields: Mapping[str, str]) -> str:
        """Append an entry and return its id."""
        ...

    async def group_create(
        self,
        stream_name: str,
        group_name: str,
        *,
        from_now: bool = True,
        create_stream: bool = True,
    ) -> GroupCreateResult: ...


class RedisStreamStore:
    """:class:`StreamStore` backed by a Redis server.

    Usage::

        async with RedisStreamStore.from_url("redis://localhost:6379") as store:
            await store.group_create("jobs", "scorers")
    """

    def __init__(self, client: redis_async.Redis, *, url: str = "") -> None:
        self._client = client
        self._url = url

    @classmethod
    def from_url(cls, url: str) -> RedisStreamStore:
        return cls(redis_async.from_url(url, decode_responses=True), url=url)

    async def __aenter__(self) -> RedisStreamStore:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def ping(self) -> None:
        """Fail fast with a CONNECTION error before any browser work."""
        try:
            await self._client.ping()
        except RedisError as exc:
            raise self._translate(exc, "PING", "") from exc

    # -- StreamStore ---------------------------------------------------------

    async def membership_contains(self, set_name: str, value: str) -> bool:
        try:
            return bool(await self._client.sismember(set_name, value))
        except RedisError as exc:
            raise self._translate(exc, "SISMEMBER", set_name) from exc

    async def membership_add(self, set_name: str, value: str) -> bool:
        try:
            return int(await self._client.sadd(set_name, value)) == 1
        except RedisError as exc:
            raise self._translate(exc, "SADD", set_name) from exc

    async def stream_append(self, stream_name: str, fields: Mapping[str, str]) -> str:
        try:
            entry_id = await self._client.xadd(stream_name, dict(fields))
        except RedisError as exc:
            raise self._translate(exc, "XADD", stream_name) from exc
        return entry_id if isinstance(entry_id, str) else entry_id.decode()

    async def group_create(
        self,
        stream_name: str,
        group_name: str,
        *,
        from_now: bool = True,
        create_stream: bool = True,
    ) -> GroupCreateResult:
        try:
            await self._client.xgroup_create(
                stream_name,
                group_name,
                id="$" if from_now else "0",
                mkstream=create_stream,
            )
        except ResponseError as exc:
            if str(exc).startswith(_BUSYGROUP):
                return GroupCreateResult.ALREADY_EXISTS
            raise self._translate(exc, "XGROUP CREATE", stream_name) from exc
        except RedisError as exc:
            raise self._translate(exc, "XGROUP CREATE", stream_name) from exc
        return GroupCreateResult.CREATED

    # -- helpers -------------------------------------------------------------

    def _translate(self, exc: RedisError, operation: str, key: str) -> ActionableError:
        if isinstance(exc, (RedisConnectionError, RedisTimeoutError)):
            return ActionableError.connection("Redis", self._url or "redis", str(exc))
        return ActionableError.store(operation, key, str(exc))
