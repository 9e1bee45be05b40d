"""Redis datastore for durable event records.

Layout, for a key prefix ``P``:
- ``P:records``    hash of record id -> JSON-encoded EventRecord
- ``P:unfinished`` sorted set of ids without finished_at, scored by publish sequence
- ``P:seq``        counter issuing publish sequence numbers

Features:
- Connection pooling with lazy, lock-protected connection setup
- Atomic create/update through MULTI/EXEC with WATCH
- Atomic next-record lookup through a server-side script
- Health checks
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlparse, urlunparse
from uuid import uuid4

from pydantic import ValidationError
from pydantic_core import PydanticSerializationError

from durabus.core.errors import RecordNotFoundError, RecordSerializationError
from durabus.core.record import EventRecord

logger = logging.getLogger("durabus.datastores.redis")

_NEXT_RECORD_SCRIPT = """
local ids = redis.call('ZRANGE', KEYS[1], 0, 0)
if #ids == 0 then
    return false
end
return redis.call('HGET', KEYS[2], ids[1])
"""


def _sanitize_url(url: str) -> str:
    """Mask password in Redis URL for logging."""
    try:
        parsed = urlparse(url)
        if parsed.password:
            netloc = f"{parsed.username}:****@{parsed.hostname}"
            if parsed.port:
                netloc += f":{parsed.port}"
            return urlunparse(
                (parsed.scheme, netloc, parsed.path, parsed.params, parsed.query, parsed.fragment)
            )
        return f"{parsed.hostname}:{parsed.port or 6379}"
    except Exception:
        return "<url>"


@dataclass
class DatastoreHealth:
    """Health check result."""

    healthy: bool
    latency_ms: float
    details: dict[str, Any]


class RedisDatastore:
    """Durable datastore keeping event records in Redis."""

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379",
        key_prefix: str = "durabus",
        pool_size: int = 10,
    ) -> None:
        """Initialize Redis datastore.

        Args:
            redis_url: Redis connection URL.
            key_prefix: Prefix for every key this datastore writes.
            pool_size: Connection pool size.
        """
        self._url = redis_url
        self._url_safe = _sanitize_url(redis_url)
        self.key_prefix = key_prefix
        self.records_key = f"{key_prefix}:records"
        self.unfinished_key = f"{key_prefix}:unfinished"
        self.seq_key = f"{key_prefix}:seq"
        self._pool_size = pool_size

        self._redis: Any = None
        self._next_record: Any = None
        self._conn_lock = asyncio.Lock()

    @property
    def redis_url(self) -> str:
        return self._url

    async def _get_client(self) -> Any:
        try:
            from redis.asyncio import ConnectionPool, Redis
        except ImportError as e:
            raise ImportError("Install redis: pip install durabus[redis]") from e

        if self._redis is not None:
            return self._redis

        async with self._conn_lock:
            # Another coroutine may have connected while we waited
            if self._redis is not None:
                return self._redis

            pool = ConnectionPool.from_url(
                self._url, max_connections=self._pool_size, decode_responses=True
            )
            client = Redis(connection_pool=pool)
            try:
                await client.ping()
            except Exception:
                await client.aclose()
                raise

            self._next_record = client.register_script(_NEXT_RECORD_SCRIPT)
            self._redis = client
            logger.info(f"Connected to Redis at {self._url_safe}")
            return self._redis

    @staticmethod
    def _encode(event: EventRecord) -> str:
        try:
            return event.model_dump_json()
        except PydanticSerializationError as e:
            raise RecordSerializationError(
                f"Cannot encode event {event.name!r}: {e}", original=e
            ) from e

    @staticmethod
    def _decode(raw: str) -> EventRecord:
        try:
            return EventRecord.model_validate_json(raw)
        except ValidationError as e:
            raise RecordSerializationError(f"Cannot decode stored event: {e}", original=e) from e

    async def save_event(self, event: EventRecord) -> EventRecord:
        """Create or replace a record.

        Raises:
            RecordNotFoundError: If event carries an id that is not stored.
            RecordSerializationError: If the payload is not JSON-encodable.
        """
        redis = await self._get_client()

        if not event.id:
            event = event.model_copy(update={"id": str(uuid4())})
            data = self._encode(event)
            sequence = await redis.incr(self.seq_key)
            async with redis.pipeline(transaction=True) as pipe:
                pipe.hset(self.records_key, event.id, data)
                if event.finished_at is None:
                    pipe.zadd(self.unfinished_key, {event.id: sequence})
                await pipe.execute()
            logger.debug(f"Created event {event.id} ({event.name}) at sequence {sequence}")
            return event

        data = self._encode(event)

        async def _update(pipe: Any) -> None:
            if not await pipe.hexists(self.records_key, event.id):
                raise RecordNotFoundError(event.id)
            pipe.multi()
            pipe.hset(self.records_key, event.id, data)
            if event.finished_at is not None:
                pipe.zrem(self.unfinished_key, event.id)

        await redis.transaction(_update, self.records_key)
        logger.debug(f"Updated event {event.id} ({event.state.value})")
        return event

    async def get_event(self) -> EventRecord | None:
        """Return the oldest record without finished_at, or None."""
        await self._get_client()
        raw = await self._next_record(keys=[self.unfinished_key, self.records_key])
        if raw is None:
            return None
        return self._decode(raw)

    async def get(self, record_id: str) -> EventRecord | None:
        redis = await self._get_client()
        raw = await redis.hget(self.records_key, record_id)
        if raw is None:
            return None
        return self._decode(raw)

    async def health(self) -> DatastoreHealth:
        """Check datastore health."""
        start = time.monotonic()
        try:
            redis = await self._get_client()
            await redis.ping()
            records = await redis.hlen(self.records_key)
            unfinished = await redis.zcard(self.unfinished_key)
            return DatastoreHealth(
                healthy=True,
                latency_ms=(time.monotonic() - start) * 1000,
                details={"records": records, "unfinished": unfinished},
            )
        except Exception as e:
            return DatastoreHealth(
                healthy=False,
                latency_ms=(time.monotonic() - start) * 1000,
                details={"error": str(e)},
            )

    async def delete_all(self) -> None:
        """Delete every key owned by this datastore (for testing)."""
        redis = await self._get_client()
        await redis.delete(self.records_key, self.unfinished_key, self.seq_key)

    async def close(self) -> None:
        """Close Redis connection."""
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
            self._next_record = None
            logger.info("Closed Redis connection")
