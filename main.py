"""
Contentful GraphQL MCP Server

This module implements a Model Context Protocol (MCP) server that exposes a Contentful
space's GraphQL schema and content. The server exposes six tools:
1. graphql_list_content_types - List the content types available in the space
2. graphql_get_content_type_schema - Show the fields of one content type
3. graphql_get_example - Generate example queries for a content type
4. graphql_query - Validate and execute an arbitrary GraphQL query
5. smart_search - Search a term across all content types with text fields
6. build_search_query - Generate a reusable search query for one content type

Content model metadata is introspected at startup and kept in an in-memory cache
that is refreshed on a fixed interval, so schema lookups and query synthesis do
not need extra network calls.

Key Features:
- Cache-first content type resolution with a "Collection" suffix fallback
- Client-side validation of queries against the introspected schema
- Concurrent fan-out search across content types
- stdio transport by default, HTTP transport when ENABLE_HTTP_SERVER=true
"""

import asyncio
import logging
import sys
from typing import List, Optional

import httpx
from fastmcp import FastMCP

import prompts
from config import ConfigurationError, ServerConfig, load_config, validate_environment
from graphql_client import ContentfulGraphQLClient
from metadata_cache import MetadataCache, run_refresh_loop, stop_refresh_loop
from tool_handlers import GraphQLToolHandlers


# Logs go to stderr; stdout carries the stdio transport.
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger(__name__)


def create_server(
    config: ServerConfig,
    http_client: Optional[httpx.AsyncClient] = None,
    cache: Optional[MetadataCache] = None,
):
    """
    Create and configure the FastMCP server with the Contentful GraphQL tools.

    This function is the composition root: it builds the GraphQL client, the
    metadata cache and the tool handlers, then registers tools and prompts.

    Returns:
        tuple: (FastMCP server instance, GraphQLToolHandlers instance)
    """
    client = ContentfulGraphQLClient(timeout=config.request_timeout, http_client=http_client)
    handlers = GraphQLToolHandlers(config, client, cache or MetadataCache())
    instructions = """
    This MCP server provides access to a Contentful space through its GraphQL API.
    Start with graphql_list_content_types, inspect a type with graphql_get_content_type_schema,
    look at graphql_get_example, then run queries with graphql_query. Use smart_search to find
    entries across all content types and build_search_query to get a reusable search query.
    Tool results are JSON objects with "content" and "isError"; a handled failure is
    reported by "isError": true inside that object.
    """
    logger.info("Initializing FastMCP server for Contentful GraphQL")
    mcp = FastMCP(name="Contentful GraphQL MCP Server", instructions=instructions)

    @mcp.tool
    async def graphql_list_content_types(
        spaceId: Optional[str] = None,
        environmentId: Optional[str] = None,
        cdaToken: Optional[str] = None,
    ) -> dict:
        """IMPORTANT: Use this tool FIRST before attempting to write any GraphQL queries.

        Lists all available content types in the Contentful space's GraphQL schema,
        with the root query field used to fetch each one.

        Args:
            spaceId: The ID of the Contentful space (defaults to the configured space).
            environmentId: The environment within the space (defaults to "master").
            cdaToken: Content Delivery API token (defaults to the configured token).

        Returns:
            dict: Tool response {"content": [{"type": "text", "text": ...}], "isError": true}.
            Handled failures set isError inside this JSON, not on the MCP result,
            so clients should check the returned isError field.
        """
        return await handlers.call_tool("graphql_list_content_types", {
            "spaceId": spaceId, "environmentId": environmentId, "cdaToken": cdaToken,
        })

    @mcp.tool
    async def graphql_get_content_type_schema(
        contentType: str,
        spaceId: Optional[str] = None,
        environmentId: Optional[str] = None,
        cdaToken: Optional[str] = None,
    ) -> dict:
        """Get the detailed schema for a specific content type.

        Use this AFTER graphql_list_content_types. Returns all fields and their
        GraphQL types. "Article" also matches "ArticleCollection".

        Args:
            contentType: The name of the content type (e.g. 'BlogPost').

        Returns:
            dict: Tool response {"content": [{"type": "text", "text": ...}], "isError": true}.
            Handled failures set isError inside this JSON, not on the MCP result,
            so clients should check the returned isError field.
        """
        return await handlers.call_tool("graphql_get_content_type_schema", {
            "contentType": contentType,
            "spaceId": spaceId, "environmentId": environmentId, "cdaToken": cdaToken,
        })

    @mcp.tool
    async def graphql_get_example(
        contentType: str,
        includeRelations: bool = False,
        spaceId: Optional[str] = None,
        environmentId: Optional[str] = None,
        cdaToken: Optional[str] = None,
    ) -> dict:
        """Generate example GraphQL queries for a content type.

        Args:
            contentType: The name of the content type for the example query.
            includeRelations: Whether to include reference fields as fragments (default false).

        Returns:
            dict: Tool response {"content": [{"type": "text", "text": ...}], "isError": true}.
            Handled failures set isError inside this JSON, not on the MCP result,
            so clients should check the returned isError field.
        """
        return await handlers.call_tool("graphql_get_example", {
            "contentType": contentType, "includeRelations": includeRelations,
            "spaceId": spaceId, "environmentId": environmentId, "cdaToken": cdaToken,
        })

    @mcp.tool
    async def graphql_query(
        query: str,
        variables: Optional[dict] = None,
        spaceId: Optional[str] = None,
        environmentId: Optional[str] = None,
        cdaToken: Optional[str] = None,
    ) -> dict:
        """Execute a GraphQL query against the Contentful GraphQL API.

        Before using this tool, use graphql_list_content_types and
        graphql_get_content_type_schema to learn the content model. The query is
        validated against the cached schema before it is sent.

        Args:
            query: The GraphQL query string to execute.
            variables: Optional variables for the query.

        Returns:
            dict: Tool response {"content": [{"type": "text", "text": ...}], "isError": true}.
            Handled failures set isError inside this JSON, not on the MCP result,
            so clients should check the returned isError field.
        """
        return await handlers.call_tool("graphql_query", {
            "query": query, "variables": variables,
            "spaceId": spaceId, "environmentId": environmentId, "cdaToken": cdaToken,
        })

    @mcp.tool
    async def smart_search(
        query: str,
        contentTypes: Optional[List[str]] = None,
        limit: int = 5,
        spaceId: Optional[str] = None,
        environmentId: Optional[str] = None,
        cdaToken: Optional[str] = None,
    ) -> dict:
        """Search for a term across all content types that have text fields.

        Args:
            query: The text to search for.
            contentTypes: Optional list of content type names to restrict the search to.
            limit: Maximum number of items per content type (default 5).

        Returns:
            dict: Tool response {"content": [{"type": "text", "text": ...}], "isError": true}.
            Handled failures set isError inside this JSON, not on the MCP result,
            so clients should check the returned isError field.
        """
        return await handlers.call_tool("smart_search", {
            "query": query, "contentTypes": contentTypes, "limit": limit,
            "spaceId": spaceId, "environmentId": environmentId, "cdaToken": cdaToken,
        })

    @mcp.tool
    async def build_search_query(
        contentType: str,
        searchTerm: str,
        fields: Optional[List[str]] = None,
    ) -> dict:
        """Build a parametrized GraphQL search query for one content type.

        Args:
            contentType: The content type to search.
            searchTerm: The text to search for.
            fields: Optional subset of text fields to search in.

        Returns:
            dict: Tool response {"content": [{"type": "text", "text": ...}], "isError": true}.
            Handled failures set isError inside this JSON, not on the MCP result,
            so clients should check the returned isError field.
        """
        return await handlers.call_tool("build_search_query", {
            "contentType": contentType, "searchTerm": searchTerm, "fields": fields,
        })

    @mcp.prompt(name="explore-graphql-schema")
    def explore_graphql_schema(goal: Optional[str] = None):
        """Explore the GraphQL schema for this Contentful space and get guidance on querying content"""
        return prompts.explore_graphql_schema(goal)

    @mcp.prompt(name="build-graphql-query")
    def build_graphql_query(
        contentType: str,
        fields: Optional[str] = None,
        filters: Optional[str] = None,
        includeReferences: Optional[str] = None,
    ):
        """Build a custom GraphQL query for a specific content need"""
        return prompts.build_graphql_query(contentType, fields, filters, includeReferences)

    return mcp, handlers


async def main():
    """
    Main entry point for the Contentful GraphQL MCP Server.

    This function:
    1. Loads and validates configuration from the environment
    2. Populates the metadata cache once before serving
    3. Starts the periodic cache refresh task
    4. Serves MCP over stdio, or over HTTP when ENABLE_HTTP_SERVER=true
    5. Cancels the refresh task and closes the HTTP client on shutdown
    """
    config = load_config()
    try:
        port = validate_environment(config)
    except ConfigurationError as e:
        logger.error(str(e))
        sys.exit(1)

    logger.info("Starting Contentful GraphQL MCP Server")
    server, handlers = create_server(config)

    refresh_task = None
    if not config.space_id:
        logger.warning("SPACE_ID not set; metadata cache will not be loaded")
    else:
        await handlers.cache.refresh(handlers.client, config.space_id, config.environment_id, config.access_token)
        refresh_task = asyncio.create_task(run_refresh_loop(
            handlers.cache, handlers.client, config.space_id, config.environment_id,
            config.access_token, config.refresh_interval,
        ))

    try:
        if config.enable_http:
            logger.info(f"Server starting with HTTP transport on host={config.http_host}, port={port}")
            await server.run_async(transport="http", host=config.http_host, port=port)
        else:
            logger.info("Server starting on stdio")
            await server.run_async(transport="stdio")
    except KeyboardInterrupt:
        logger.info("Server shutdown requested by user")
    except Exception as e:
        logger.error(f"Server error: {type(e).__name__}={str(e)}")
        raise
    finally:
        if refresh_task is not None:
            await stop_refresh_loop(refresh_task)
        logger.info("Closing Contentful GraphQL client")
        await handlers.client.close()
        logger.info("Server shutdown complete")


def run():
    asyncio.run(main())


if __name__ == "__main__":
    run()
