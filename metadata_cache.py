"""
In-memory cache of Contentful content model metadata.

The cache holds the discovered content types, the parsed field schema of each
type and, separately, the full client-side GraphQLSchema used to validate
incoming queries. It is populated at startup and reloaded on a fixed interval.
A failed reload keeps whatever was cached before.

Mutations are plain attribute replacement and dict inserts, which is safe
under asyncio's single-threaded scheduling. Readers may observe a
half-refreshed cache but never a partially written entry.
"""

import asyncio
import contextlib
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from graphql import GraphQLSchema

from graphql_client import ContentfulGraphQLClient, ContentfulGraphQLError
from models import CacheStatus, ContentTypeSchema, ContentTypeSummary

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_INTERVAL = 300.0


class CacheUnavailableError(Exception):
    """Raised by operations that only work from cached metadata."""


def graphql_type_name(name: str) -> str:
    """Content type ids are camelCase ("pageArticle"); GraphQL types are PascalCase."""
    return name[:1].upper() + name[1:]


class MetadataCache:
    def __init__(self):
        self.content_types: Optional[List[ContentTypeSummary]] = None
        self.schemas: Dict[str, ContentTypeSchema] = {}
        self.last_update: Optional[datetime] = None
        self.graphql_schema: Optional[GraphQLSchema] = None

    async def load(self, client: ContentfulGraphQLClient, space_id: str, environment_id: str, token: str) -> bool:
        """
        Discover content types, then fetch every type's fields concurrently.

        Returns False (leaving the cache untouched) when discovery fails.
        Individual type failures are logged and skipped.
        """
        logger.info(f"Loading Contentful metadata: space={space_id}, environment={environment_id}")
        try:
            content_types = await client.discover_content_types(space_id, environment_id, token)
        except ContentfulGraphQLError as e:
            logger.error(f"Content type discovery failed, keeping existing cache: {str(e)}")
            return False
        except (KeyError, TypeError) as e:
            logger.error(f"Unexpected content type discovery response, keeping existing cache: {type(e).__name__}={str(e)}")
            return False

        self.content_types = content_types

        results = await asyncio.gather(
            *(
                client.discover_type_fields(graphql_type_name(ct.name), space_id, environment_id, token)
                for ct in content_types
            ),
            return_exceptions=True,
        )
        loaded = 0
        for content_type, result in zip(content_types, results):
            if isinstance(result, BaseException):
                logger.warning(f"Failed to load schema for content type '{content_type.name}': {type(result).__name__}={str(result)}")
                continue
            self.schemas[result.content_type] = result
            loaded += 1

        self.last_update = datetime.now(timezone.utc)
        logger.info(f"Metadata cache loaded: content_types={len(content_types)}, schemas={loaded}")
        return True

    async def load_graphql_schema(self, client: ContentfulGraphQLClient, space_id: str, environment_id: str, token: str) -> bool:
        schema = await client.fetch_schema(space_id, environment_id, token)
        if schema is None:
            return False
        self.graphql_schema = schema
        return True

    async def refresh(self, client: ContentfulGraphQLClient, space_id: str, environment_id: str, token: str):
        await asyncio.gather(
            self.load(client, space_id, environment_id, token),
            self.load_graphql_schema(client, space_id, environment_id, token),
        )

    def is_available(self) -> bool:
        return self.content_types is not None and len(self.schemas) > 0

    def status(self) -> CacheStatus:
        return CacheStatus(
            available=self.is_available(),
            content_types_count=len(self.content_types or []),
            schemas_count=len(self.schemas),
            last_update=self.last_update,
        )

    def clear(self):
        self.content_types = None
        self.schemas = {}
        self.last_update = None
        self.graphql_schema = None

    def get_content_types(self) -> Optional[List[ContentTypeSummary]]:
        return self.content_types

    def get_schema(self, name: str) -> Optional[ContentTypeSchema]:
        """Exact key first, then the PascalCase form of the name."""
        schema = self.schemas.get(name)
        if schema is None:
            schema = self.schemas.get(graphql_type_name(name))
        return schema


async def run_refresh_loop(
    cache: MetadataCache,
    client: ContentfulGraphQLClient,
    space_id: str,
    environment_id: str,
    token: str,
    interval: float = DEFAULT_REFRESH_INTERVAL,
):
    """Reload the cache every `interval` seconds until cancelled."""
    while True:
        await asyncio.sleep(interval)
        logger.info("Refreshing Contentful metadata cache")
        try:
            await cache.refresh(client, space_id, environment_id, token)
        except Exception as e:
            logger.error(f"Error refreshing metadata cache: {type(e).__name__}={str(e)}")


async def stop_refresh_loop(task: asyncio.Task):
    """Cancel a run_refresh_loop() task and wait until it has finished."""
    task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await task
