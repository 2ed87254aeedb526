"""Resolve user-supplied content type names to field schemas, cache first."""

import logging
from dataclasses import dataclass
from typing import Optional

from graphql_client import ContentfulGraphQLClient, candidate_type_names
from metadata_cache import MetadataCache
from models import ContentTypeSchema

logger = logging.getLogger(__name__)


@dataclass
class ResolvedSchema:
    schema: ContentTypeSchema
    cached: bool = False


class ContentTypeResolver:
    """
    Two-tier lookup: the metadata cache (name, then name + "Collection"),
    then a live introspection call that applies the same suffix rule and
    raises ContentTypeNotFoundError naming both names when neither exists.
    """

    def __init__(self, cache: MetadataCache, client: ContentfulGraphQLClient):
        self.cache = cache
        self.client = client

    def resolve_cached(self, name: str) -> Optional[ContentTypeSchema]:
        """
        Look a content type up in the cache only.

        Args:
            name: Content type name as given by the caller, e.g. "Article" or "pageArticle".

        Returns:
            ContentTypeSchema or None: None when the cache is not loaded or has no match.
        """
        if not self.cache.is_available():
            return None
        for candidate in candidate_type_names(name):
            schema = self.cache.get_schema(candidate)
            if schema is not None:
                return schema
        return None

    async def resolve(self, name: str, space_id: str, environment_id: str, token: str) -> ResolvedSchema:
        """
        Resolve a content type name to its field schema.

        Args:
            name: Content type name as given by the caller.
            space_id: Contentful space used for the live lookup.
            environment_id: Contentful environment used for the live lookup.
            token: Content Delivery API token.

        Returns:
            ResolvedSchema: The schema, with cached=True when served from the cache.

        Raises:
            ContentTypeNotFoundError: Neither the name nor its Collection form exists.
            ContentfulGraphQLError: The live lookup failed.
        """
        schema = self.resolve_cached(name)
        if schema is not None:
            logger.debug(f"Resolved content type '{name}' from cache as '{schema.content_type}'")
            return ResolvedSchema(schema=schema, cached=True)

        logger.info(f"Content type '{name}' not cached, fetching from GraphQL API")
        schema = await self.client.discover_type_fields(name, space_id, environment_id, token)
        return ResolvedSchema(schema=schema)
