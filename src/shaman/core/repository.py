"""Record store abstraction with in-memory and Redis backends."""

import logging
from typing import Dict, List, Optional, Protocol

import redis.asyncio as aioredis
from pydantic import ValidationError
from redis.exceptions import RedisError

from shaman.api.models import Resource, normalize_domain
from shaman.core.config import Settings
from shaman.utils.exceptions import (
    RecordExistsError,
    RecordNotFoundError,
    RepositoryError,
)

logger = logging.getLogger(__name__)

# Redis keys
REDIS_RECORDS_SET = "shaman:records"
REDIS_RECORD_PREFIX = "shaman:record:"


class ResourceRepository(Protocol):
    """Protocol for record stores."""

    async def get(self, domain: str) -> Resource: ...
    async def list(self) -> List[Resource]: ...
    async def add(self, resource: Resource) -> Resource: ...
    async def put(self, resource: Resource) -> Resource: ...
    async def update(self, resource: Resource) -> Resource: ...
    async def replace_all(self, resources: List[Resource]) -> List[Resource]: ...
    async def delete(self, domain: str) -> None: ...
    async def close(self) -> None: ...


def _last_wins(resources: List[Resource]) -> Dict[str, Resource]:
    """Index resources by domain; a later duplicate replaces an earlier one."""
    return {resource.domain: resource for resource in resources}


class MemoryRepository:
    """In-memory record store.

    Each operation completes without awaiting, so it is atomic with respect
    to other requests on the same event loop.
    """

    def __init__(self, resources: Optional[List[Resource]] = None):
        self._records: Dict[str, Resource] = {}

        for resource in resources or []:
            self._records[resource.domain] = resource.model_copy(deep=True)

    async def get(self, domain: str) -> Resource:
        """Return a copy of the stored resource."""
        resource = self._records.get(normalize_domain(domain))

        if resource is None:
            raise RecordNotFoundError()

        return resource.model_copy(deep=True)

    async def list(self) -> List[Resource]:
        """Return copies of all stored resources."""
        return [resource.model_copy(deep=True) for resource in self._records.values()]

    async def add(self, resource: Resource) -> Resource:
        """Store a new resource. Raises RecordExistsError if present."""
        if resource.domain in self._records:
            raise RecordExistsError()

        return await self.put(resource)

    async def put(self, resource: Resource) -> Resource:
        """Store a resource, replacing any existing one."""
        self._records[resource.domain] = resource.model_copy(deep=True)
        logger.debug(f"{resource.domain} stored")

        return resource

    async def update(self, resource: Resource) -> Resource:
        """Replace an existing resource. Raises RecordNotFoundError if absent."""
        if resource.domain not in self._records:
            raise RecordNotFoundError()

        return await self.put(resource)

    async def replace_all(self, resources: List[Resource]) -> List[Resource]:
        """Make the store contain exactly the given resources."""
        indexed = _last_wins(resources)
        self._records = {
            domain: resource.model_copy(deep=True)
            for domain, resource in indexed.items()
        }
        logger.info(f"Record store replaced: {len(indexed)} domains")

        return list(indexed.values())

    async def delete(self, domain: str) -> None:
        """Remove a resource. Raises RecordNotFoundError if absent."""
        domain = normalize_domain(domain)

        if self._records.pop(domain, None) is None:
            raise RecordNotFoundError()

        logger.debug(f"{domain} removed")

    async def close(self) -> None:
        return None


class RedisRepository:
    """
    Redis-backed record store.

    Each resource is stored as JSON under ``shaman:record:<domain>`` and its
    domain is indexed in the ``shaman:records`` set.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        client: Optional[aioredis.Redis] = None,
    ):
        if client is None:
            if url is None:
                raise ValueError("either url or client is required")

            client = aioredis.from_url(
                url,
                encoding="utf-8",
                decode_responses=True,
            )

        self._client = client

    @staticmethod
    def _key(domain: str) -> str:
        return f"{REDIS_RECORD_PREFIX}{domain}"

    @staticmethod
    def _load(raw: str) -> Resource:
        try:
            return Resource.model_validate_json(raw)
        except ValidationError as e:
            raise RepositoryError(f"corrupt record in store: {e}") from e

    async def get(self, domain: str) -> Resource:
        """Return the stored resource."""
        domain = normalize_domain(domain)

        try:
            raw = await self._client.get(self._key(domain))
        except RedisError as e:
            raise RepositoryError(str(e)) from e

        if raw is None:
            raise RecordNotFoundError()

        return self._load(raw)

    async def list(self) -> List[Resource]:
        """Return all stored resources, sorted by domain."""
        try:
            domains = sorted(await self._client.smembers(REDIS_RECORDS_SET))

            if not domains:
                return []

            raws = await self._client.mget([self._key(d) for d in domains])
        except RedisError as e:
            raise RepositoryError(str(e)) from e

        # a domain may vanish between SMEMBERS and MGET
        return [self._load(raw) for raw in raws if raw is not None]

    async def _store(self, resource: Resource, exists: Optional[bool] = None) -> bool:
        """
        Write a resource and its index entry in one MULTI/EXEC.

        Args:
            resource: The resource to write
            exists: When set, only write if the key's presence matches

        Returns:
            False if the presence condition did not hold
        """
        key = self._key(resource.domain)
        value = resource.model_dump_json(exclude_none=True)

        async def write(pipe) -> bool:
            present = bool(await pipe.exists(key))
            pipe.multi()

            if exists is not None and present != exists:
                return False

            pipe.set(key, value)
            pipe.sadd(REDIS_RECORDS_SET, resource.domain)
            return True

        try:
            return await self._client.transaction(
                write, key, value_from_callable=True
            )
        except RedisError as e:
            raise RepositoryError(str(e)) from e

    async def add(self, resource: Resource) -> Resource:
        """Store a new resource. Raises RecordExistsError if present."""
        if not await self._store(resource, exists=False):
            raise RecordExistsError()

        return resource

    async def put(self, resource: Resource) -> Resource:
        """Store a resource, replacing any existing one."""
        await self._store(resource)

        return resource

    async def update(self, resource: Resource) -> Resource:
        """Replace an existing resource. Raises RecordNotFoundError if absent."""
        if not await self._store(resource, exists=True):
            raise RecordNotFoundError()

        return resource

    async def replace_all(self, resources: List[Resource]) -> List[Resource]:
        """
        Make the store contain exactly the given resources.

        Stale keys are found by scanning the record prefix as well as the
        index, so a record key that lost its index entry is still removed.
        The index is watched; a concurrent write restarts the transaction.
        """
        indexed = _last_wins(resources)
        keep = {self._key(domain) for domain in indexed}

        async def write(pipe) -> int:
            stale = {self._key(d) for d in await pipe.smembers(REDIS_RECORDS_SET)}

            async for key in pipe.scan_iter(match=f"{REDIS_RECORD_PREFIX}*"):
                stale.add(key)

            stale -= keep
            pipe.multi()

            if stale:
                pipe.delete(*sorted(stale))

            pipe.delete(REDIS_RECORDS_SET)

            for domain, resource in indexed.items():
                pipe.set(self._key(domain), resource.model_dump_json(exclude_none=True))
                pipe.sadd(REDIS_RECORDS_SET, domain)

            return len(stale)

        try:
            removed = await self._client.transaction(
                write, REDIS_RECORDS_SET, value_from_callable=True
            )
        except RedisError as e:
            raise RepositoryError(str(e)) from e

        logger.info(f"Record store replaced: {len(indexed)} domains, {removed} removed")

        return list(indexed.values())

    async def delete(self, domain: str) -> None:
        """Remove a resource. Raises RecordNotFoundError if absent."""
        domain = normalize_domain(domain)

        try:
            async with self._client.pipeline(transaction=True) as pipe:
                pipe.delete(self._key(domain))
                pipe.srem(REDIS_RECORDS_SET, domain)
                deleted, _ = await pipe.execute()
        except RedisError as e:
            raise RepositoryError(str(e)) from e

        if not deleted:
            raise RecordNotFoundError()

    async def close(self) -> None:
        """Close the Redis connection."""
        await self._client.aclose()


def build_repository(settings: Settings) -> ResourceRepository:
    """Build the record store selected by settings."""
    if settings.use_redis:
        logger.info(f"Record store: redis at {settings.redis_url}")
        return RedisRepository(settings.redis_url)

    logger.info("Record store: memory")
    return MemoryRepository()
