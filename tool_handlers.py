"""
Tool handlers for the Contentful GraphQL MCP Server.

Each handler takes the tool's argument dict (camelCase keys, as sent by MCP
clients) and returns an MCP tool response dict. Handled failures (missing
configuration, remote errors, unknown content types, an unloaded cache) are
reported as responses with isError set; call_tool() is the outer boundary that
turns anything unexpected into a generic "Error: ..." response.
"""

import json
import logging
from typing import Any, Awaitable, Callable, Dict, Tuple

from graphql import GraphQLError, parse, validate

from config import ConfigurationError, ServerConfig
from graphql_client import (
    ContentfulGraphQLClient,
    ContentfulGraphQLError,
    ContentTypeNotFoundError,
    GraphQLResponseError,
    RemoteHTTPError,
)
from metadata_cache import CacheUnavailableError, MetadataCache
from models import ToolResponse
from query_builder import NoSearchableFieldsError, build_example_query, build_search_query, format_search_query
from resolver import ContentTypeResolver
from smart_search import DEFAULT_SEARCH_LIMIT, SearchOrchestrator

logger = logging.getLogger(__name__)

CACHE_RETRY_HINT = "The metadata cache has not been loaded yet. Please try again in a moment."


def _json(payload: Any) -> str:
    return json.dumps(payload, indent=2, default=str)


def _error(text: str) -> dict:
    return ToolResponse.text(text, is_error=True).to_dict()


def _errors_payload(errors) -> dict:
    return _error(_json({"errors": errors}))


class GraphQLToolHandlers:
    """
    Implements the graphql_* tools plus smart_search and build_search_query.

    Space, environment and token default to the server configuration and may
    be overridden per call with spaceId, environmentId and cdaToken.
    """

    def __init__(
        self,
        config: ServerConfig,
        client: ContentfulGraphQLClient,
        cache: MetadataCache,
    ):
        self.config = config
        self.client = client
        self.cache = cache
        self.resolver = ContentTypeResolver(cache, client)
        self.search = SearchOrchestrator(cache, client, self.resolver)
        self.tools: Dict[str, Callable[[Dict[str, Any]], Awaitable[dict]]] = {
            "graphql_list_content_types": self.list_content_types,
            "graphql_get_content_type_schema": self.get_content_type_schema,
            "graphql_get_example": self.get_example,
            "graphql_query": self.graphql_query,
            "smart_search": self.smart_search,
            "build_search_query": self.build_search_query,
        }

    def connection(self, args: Dict[str, Any]) -> Tuple[str, str, str]:
        """Resolve (space_id, environment_id, token), raising ConfigurationError when missing."""
        space_id = args.get("spaceId") or self.config.space_id
        environment_id = args.get("environmentId") or self.config.environment_id
        token = args.get("cdaToken") or self.config.access_token
        if not space_id:
            raise ConfigurationError("Space ID is required")
        if not token:
            raise ConfigurationError("Content Delivery API (CDA) token is required for GraphQL queries")
        return space_id, environment_id, token

    async def call_tool(self, name: str, args: Dict[str, Any]) -> dict:
        handler = self.tools.get(name)
        try:
            if handler is None:
                raise ValueError(f"Unknown tool: {name}")
            return await handler(args or {})
        except Exception as e:
            logger.exception(f"Unexpected error in tool '{name}'")
            return _error(f"Error: {str(e)}")

    async def list_content_types(self, args: Dict[str, Any]) -> dict:
        try:
            space_id, environment_id, token = self.connection(args)
        except ConfigurationError as e:
            return _error(str(e))

        if self.cache.is_available():
            content_types = self.cache.get_content_types() or []
            logger.info(f"Listing {len(content_types)} content types from cache")
            return ToolResponse.text(_json({
                "message": "Available content types in this Contentful space (from cache). "
                           "Use graphql_get_content_type_schema to explore a specific content type.",
                "contentTypes": [ct.model_dump(by_alias=True) for ct in content_types],
                "cached": True,
            })).to_dict()

        try:
            content_types = await self.client.discover_content_types(space_id, environment_id, token)
            return ToolResponse.text(_json({
                "message": "Available content types in this Contentful space. "
                           "Use graphql_get_content_type_schema to explore a specific content type.",
                "contentTypes": [ct.model_dump(by_alias=True) for ct in content_types],
            })).to_dict()
        except RemoteHTTPError as e:
            return _error(str(e))
        except GraphQLResponseError as e:
            return _errors_payload(e.errors)
        except ContentfulGraphQLError as e:
            error_text = f"Error fetching content types: {str(e)}"
        except (KeyError, TypeError) as e:
            logger.error(f"Unexpected content types response: {type(e).__name__}={str(e)}")
            error_text = "Error fetching content types: unexpected response format"
        return _error(error_text)

    def _resolution_error(self, content_type: str, error: ContentfulGraphQLError, prefix: str) -> dict:
        if isinstance(error, ContentTypeNotFoundError):
            tried = " and ".join(f'"{name}"' for name in error.tried_names)
            return _error(
                f'Content type "{content_type}" not found in the schema (tried {tried}). '
                "Use graphql_list_content_types to see available content types."
            )
        if isinstance(error, RemoteHTTPError):
            return _error(str(error))
        if isinstance(error, GraphQLResponseError):
            return _errors_payload(error.errors)
        return _error(f"{prefix}: {str(error)}")

    async def get_content_type_schema(self, args: Dict[str, Any]) -> dict:
        content_type = args.get("contentType") or ""
        try:
            space_id, environment_id, token = self.connection(args)
            resolved = await self.resolver.resolve(content_type, space_id, environment_id, token)
        except ConfigurationError as e:
            return _error(str(e))
        except ContentfulGraphQLError as e:
            return self._resolution_error(content_type, e, "Error fetching content type schema")

        payload = resolved.schema.model_dump(by_alias=True)
        note = "Use this schema to construct your GraphQL queries. For example queries, use the graphql_get_example tool."
        if resolved.cached:
            payload["cached"] = True
            note = f"This schema was served from cache. {note}"
        payload["note"] = note
        return ToolResponse.text(_json(payload)).to_dict()

    async def get_example(self, args: Dict[str, Any]) -> dict:
        content_type = args.get("contentType") or ""
        try:
            space_id, environment_id, token = self.connection(args)
            resolved = await self.resolver.resolve(content_type, space_id, environment_id, token)
        except ConfigurationError as e:
            return _error(str(e))
        except ContentfulGraphQLError as e:
            return self._resolution_error(content_type, e, "Error generating example query")

        example = build_example_query(resolved.schema, bool(args.get("includeRelations")))
        return ToolResponse.text(example).to_dict()

    async def graphql_query(self, args: Dict[str, Any]) -> dict:
        try:
            space_id, environment_id, token = self.connection(args)
        except ConfigurationError as e:
            return _error(str(e))

        query = args.get("query") or ""
        schema = self.cache.graphql_schema
        if schema is not None:
            try:
                document = parse(query)
            except GraphQLError as e:
                return _errors_payload([{"message": f"GraphQL query parsing error: {e.message}"}])
            validation_errors = validate(schema, document)
            if validation_errors:
                return _errors_payload([
                    {"message": f"Schema validation error: {error.message}"} for error in validation_errors
                ])
        else:
            logger.warning("GraphQL schema not available for validation, sending query unvalidated")

        try:
            result = await self.client.post(space_id, environment_id, token, query, args.get("variables") or {})
        except RemoteHTTPError as e:
            return _errors_payload([{"message": str(e)}])
        except ContentfulGraphQLError as e:
            return _errors_payload([{"message": f"Error executing GraphQL query: {str(e)}"}])

        if result.get("errors"):
            logger.warning(f"GraphQL query returned {len(result['errors'])} error(s)")
            return _errors_payload(result["errors"])
        return ToolResponse.text(_json(result)).to_dict()

    async def smart_search(self, args: Dict[str, Any]) -> dict:
        if not self.cache.is_available():
            return _error(f"Smart search requires cached metadata. {CACHE_RETRY_HINT}")

        try:
            space_id, environment_id, token = self.connection(args)
        except ConfigurationError:
            return _error("Space ID and CDA token are required for smart search")

        limit = args.get("limit")
        try:
            limit = DEFAULT_SEARCH_LIMIT if limit is None else int(limit)
        except (TypeError, ValueError):
            limit = 0
        if limit < 1:
            return _error(f"limit must be a positive integer, got {args.get('limit')!r}")

        try:
            response = await self.search.smart_search(
                args.get("query") or "",
                space_id,
                environment_id,
                token,
                content_types=args.get("contentTypes"),
                limit=limit,
            )
        except CacheUnavailableError as e:
            return _error(f"{str(e)} {CACHE_RETRY_HINT}")
        return ToolResponse.text(_json(response.model_dump(by_alias=True))).to_dict()

    async def build_search_query(self, args: Dict[str, Any]) -> dict:
        if not self.cache.is_available():
            return _error(f"Query builder requires cached metadata. {CACHE_RETRY_HINT}")

        content_type = args.get("contentType") or ""
        schema = self.resolver.resolve_cached(content_type)
        if schema is None:
            return _error(
                f'Content type "{content_type}" not found in cache. '
                "Use graphql_list_content_types to see available content types."
            )

        try:
            search_query = build_search_query(schema, args.get("searchTerm") or "", args.get("fields"))
        except NoSearchableFieldsError as e:
            return _error(str(e))
        return ToolResponse.text(format_search_query(search_query)).to_dict()
