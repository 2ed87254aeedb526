"""
Contentful GraphQL MCP Client Example

This module demonstrates how to interact with the Contentful GraphQL MCP Server
using the FastMCP client library. It shows practical examples of:

1. Connecting to the MCP server via HTTP transport (or in-memory for tests)
2. Listing content types and running a smart search
3. Decoding the JSON text carried in tool responses

Usage Examples:
- Discover the content model of a space before writing queries
- Search a term across every content type with text fields
"""

import asyncio
import json
from typing import Any, Dict, Optional

from fastmcp import Client

# MCP Server Configuration
# For local development with ENABLE_HTTP_SERVER=true: "http://localhost:3000/mcp"
SERVER_URL = "http://localhost:3000/mcp"


async def call_tool(client: Client, name: str, arguments: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Call a tool and return its MCP tool response as a dict.

    Tool handlers return {"content": [...], "isError": ...}; FastMCP delivers
    that dict to the client as JSON text.
    """
    result = await client.call_tool(name, arguments or {})
    return json.loads(result.content[0].text)


def response_text(response: Dict[str, Any]) -> str:
    return response["content"][0]["text"]


async def search(client: Client, query: str, limit: int = 5) -> Dict[str, Any]:
    """Run smart_search and return the decoded search payload."""
    response = await call_tool(client, "smart_search", {"query": query, "limit": limit})
    if response.get("isError"):
        raise RuntimeError(response_text(response))
    return json.loads(response_text(response))


async def main(query: str):
    async with Client(SERVER_URL) as client:
        content_types = await call_tool(client, "graphql_list_content_types")
        print(response_text(content_types))

        results = await search(client, query)
        print(json.dumps(results, indent=2))

# Example usage
if __name__ == "__main__":
    asyncio.run(main("address"))
