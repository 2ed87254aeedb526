"""
Smart search across every cached content type.

A search term is fanned out concurrently to each content type that has at
least one searchable text field, using an OR of `{field}_contains` filters.
Types without searchable fields are skipped without a network call. A failing
type contributes no result instead of failing the whole search, and results
keep the order of the cached content type list.
"""

import asyncio
import logging
from typing import Iterable, List, Optional

from graphql_client import ContentfulGraphQLClient, ContentfulGraphQLError
from metadata_cache import CacheUnavailableError, MetadataCache
from models import ContentTypeSummary, SearchResult, SmartSearchResponse
from query_builder import build_search_document, collection_field_name, searchable_fields
from resolver import ContentTypeResolver

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_LIMIT = 5


class SearchOrchestrator:
    """
    Runs a search term against every cached content type that has text fields.

    Schemas come from the metadata cache through the resolver; no live
    introspection happens during a search.
    """

    def __init__(self, cache: MetadataCache, client: ContentfulGraphQLClient, resolver: ContentTypeResolver):
        self.cache = cache
        self.client = client
        self.resolver = resolver

    def target_content_types(self, content_types: Optional[Iterable[str]] = None) -> List[ContentTypeSummary]:
        """Cached content types, optionally restricted to the given names (cache order kept)."""
        targets = self.cache.get_content_types() or []
        if content_types:
            wanted = set(content_types)
            targets = [ct for ct in targets if ct.name in wanted]
        return targets

    async def smart_search(
        self,
        term: str,
        space_id: str,
        environment_id: str,
        token: str,
        content_types: Optional[Iterable[str]] = None,
        limit: int = DEFAULT_SEARCH_LIMIT,
    ) -> SmartSearchResponse:
        """
        Search `term` across content types concurrently.

        Args:
            term: Text matched with `{field}_contains`.
            space_id: Contentful space.
            environment_id: Contentful environment.
            token: Content Delivery API token.
            content_types: Optional content type names to restrict the search to.
            limit: Maximum number of items per content type.

        Returns:
            SmartSearchResponse: Content types with at least one match, in cache order.

        Raises:
            CacheUnavailableError: The metadata cache has not been loaded.
        """
        if not self.cache.is_available():
            raise CacheUnavailableError("Smart search requires cached metadata.")

        targets = self.target_content_types(content_types)
        logger.info(f"Smart search: query='{term}', content_types={len(targets)}, limit={limit}")

        outcomes = await asyncio.gather(
            *(self._search_content_type(ct, term, limit, space_id, environment_id, token) for ct in targets),
            return_exceptions=True,
        )

        results = []
        for content_type, outcome in zip(targets, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(f"Search failed for content type '{content_type.name}': {type(outcome).__name__}={str(outcome)}")
                continue
            if outcome is not None:
                results.append(outcome)

        logger.info(f"Smart search completed: query='{term}', content_types_with_results={len(results)}")
        return SmartSearchResponse(
            query=term,
            results=results,
            total_content_types_searched=len(targets),
            content_types_with_results=len(results),
        )

    async def _search_content_type(
        self,
        content_type: ContentTypeSummary,
        term: str,
        limit: int,
        space_id: str,
        environment_id: str,
        token: str,
    ) -> Optional[SearchResult]:
        """Search one content type; None when it is skipped, fails or matches nothing."""
        schema = self.resolver.resolve_cached(content_type.name)
        if schema is None:
            logger.debug(f"No cached schema for content type '{content_type.name}', skipping")
            return None

        fields = searchable_fields(schema)
        if not fields:
            logger.debug(f"No searchable text fields in content type '{content_type.name}', skipping")
            return None

        field_names = [f.name for f in fields]
        query = build_search_document(schema, fields, field_names, limit)
        try:
            payload = await self.client.execute(space_id, environment_id, token, query, {"searchTerm": term})
            items = payload["data"][collection_field_name(schema.content_type)]["items"]
            found = [
                {"id": item["sys"]["id"], **{name: item.get(name) for name in field_names}}
                for item in items
            ]
        except ContentfulGraphQLError as e:
            logger.warning(f"Search query failed for content type '{content_type.name}': {str(e)}")
            return None
        except (KeyError, TypeError) as e:
            logger.warning(f"Unexpected search response for content type '{content_type.name}': {type(e).__name__}={str(e)}")
            return None

        if not found:
            return None
        return SearchResult(content_type=content_type.name, items=found)
