"""
Contentful GraphQL Client

This module wraps the Contentful GraphQL Content API. It performs:

1. Full schema introspection (used for client-side query validation)
2. Content type discovery from the root query type's *Collection fields
3. Field listing for a single type, retrying once with a "Collection" suffix
4. Execution of arbitrary queries with variables

Every request is a POST to
https://graphql.contentful.com/content/v1/spaces/{spaceId}/environments/{environmentId}
authorized with a Content Delivery API (CDA) bearer token. Failures are raised as
ContentfulGraphQLError subclasses so callers can turn them into tool responses.
"""

import json
import logging
from typing import Any, Dict, List, Optional

import httpx
from graphql import GraphQLSchema, build_client_schema, get_introspection_query

from graphql_types import normalize_type
from models import ContentTypeSchema, ContentTypeSummary, FieldDescriptor

logger = logging.getLogger(__name__)

GRAPHQL_ENDPOINT = "https://graphql.contentful.com/content/v1/spaces/{space_id}/environments/{environment_id}"

COLLECTION_SUFFIX = "Collection"

CONTENT_TYPES_QUERY = """
query {
  __schema {
    queryType {
      fields {
        name
        description
        type {
          kind
          name
          ofType {
            name
            kind
          }
        }
      }
    }
  }
}
"""

TYPE_FIELDS_QUERY = """
query TypeFields($name: String!) {
  __type(name: $name) {
    name
    description
    fields {
      name
      description
      type {
        kind
        name
        ofType {
          name
          kind
          ofType {
            name
            kind
          }
        }
      }
    }
  }
}
"""


class ContentfulGraphQLError(Exception):
    """Base error for failed calls to the Contentful GraphQL API."""


class RemoteHTTPError(ContentfulGraphQLError):
    def __init__(self, status_code: int, body: str):
        self.status_code = status_code
        self.body = body
        super().__init__(f"HTTP Error {status_code}: {body}")


class GraphQLResponseError(ContentfulGraphQLError):
    """A 2xx response that carried a top-level `errors` array."""

    def __init__(self, errors: List[Dict[str, Any]]):
        self.errors = errors
        messages = "; ".join(str(error.get("message", error)) for error in errors)
        super().__init__(f"GraphQL errors: {messages}")


class ContentTypeNotFoundError(ContentfulGraphQLError):
    def __init__(self, tried_names: List[str]):
        self.tried_names = tried_names
        names = " or ".join(f'"{name}"' for name in tried_names)
        super().__init__(f"Content type {names} not found in the schema")


def strip_collection_suffix(name: str) -> str:
    if name.endswith(COLLECTION_SUFFIX):
        return name[: -len(COLLECTION_SUFFIX)]
    return name


def candidate_type_names(type_name: str) -> List[str]:
    """Names to try for a type: as given, then with the Collection suffix."""
    if type_name.endswith(COLLECTION_SUFFIX):
        return [type_name]
    return [type_name, f"{type_name}{COLLECTION_SUFFIX}"]


class ContentfulGraphQLClient:
    """
    Async client for the Contentful GraphQL Content API.

    One httpx.AsyncClient is shared by every call; space, environment and token
    are passed per call because tools may override the configured values.
    """

    def __init__(self, timeout: float = 30.0, http_client: Optional[httpx.AsyncClient] = None):
        logger.info(f"Initializing Contentful GraphQL client: timeout={timeout}s")
        self.timeout = timeout
        self.http_client = http_client or httpx.AsyncClient(
            timeout=timeout,
            headers={
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
        )

    async def close(self):
        logger.info("Closing Contentful GraphQL HTTP client")
        await self.http_client.aclose()

    @staticmethod
    def endpoint(space_id: str, environment_id: str) -> str:
        return GRAPHQL_ENDPOINT.format(space_id=space_id, environment_id=environment_id)

    async def post(
        self,
        space_id: str,
        environment_id: str,
        token: str,
        query: str,
        variables: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        POST a GraphQL document and return the decoded JSON payload.

        The payload is returned as-is, including any `errors` array. Non-2xx
        responses raise RemoteHTTPError; transport problems and undecodable
        bodies raise ContentfulGraphQLError.
        """
        url = self.endpoint(space_id, environment_id)
        body: Dict[str, Any] = {"query": query}
        if variables is not None:
            body["variables"] = variables

        try:
            response = await self.http_client.post(
                url,
                json=body,
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.TimeoutException as e:
            logger.error(f"Request timeout calling GraphQL API: space={space_id}, environment={environment_id}, timeout={self.timeout}s")
            raise ContentfulGraphQLError(f"Request to Contentful GraphQL API timed out after {self.timeout}s") from e
        except httpx.ConnectError as e:
            logger.error(f"Connection error calling GraphQL API: {str(e)}")
            raise ContentfulGraphQLError("Unable to connect to Contentful GraphQL API") from e
        except httpx.HTTPError as e:
            logger.error(f"HTTP client error calling GraphQL API: {type(e).__name__}={str(e)}")
            raise ContentfulGraphQLError(f"Contentful GraphQL API request failed: {type(e).__name__}") from e

        if not response.is_success:
            logger.error(f"HTTP error from GraphQL API: status={response.status_code}, space={space_id}, environment={environment_id}")
            raise RemoteHTTPError(response.status_code, response.text)

        try:
            return response.json()
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON response from GraphQL API: space={space_id}")
            raise ContentfulGraphQLError("Invalid response format from Contentful GraphQL API") from e

    async def execute(
        self,
        space_id: str,
        environment_id: str,
        token: str,
        query: str,
        variables: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Like post(), but raises GraphQLResponseError when the payload carries errors."""
        payload = await self.post(space_id, environment_id, token, query, variables)
        if payload.get("errors"):
            logger.warning(f"GraphQL errors returned: {json.dumps(payload['errors'])}")
            raise GraphQLResponseError(payload["errors"])
        return payload

    async def fetch_schema(self, space_id: str, environment_id: str, token: str) -> Optional[GraphQLSchema]:
        """
        Introspect the whole schema and build a client-side GraphQLSchema.

        Returns None instead of raising; the reason is logged.
        """
        if not token:
            logger.error("No delivery access token provided for GraphQL schema fetch")
            return None

        logger.info(f"Fetching GraphQL schema: space={space_id}, environment={environment_id}")
        try:
            payload = await self.execute(space_id, environment_id, token, get_introspection_query())
            schema = build_client_schema(payload["data"])
        except ContentfulGraphQLError as e:
            logger.error(f"Failed to fetch GraphQL schema: {str(e)}")
            return None
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Unable to build GraphQL schema from introspection result: {type(e).__name__}={str(e)}")
            return None

        logger.info(f"GraphQL schema loaded with {len(schema.type_map)} types")
        return schema

    async def discover_content_types(self, space_id: str, environment_id: str, token: str) -> List[ContentTypeSummary]:
        """List content types from the root query fields that return a *Collection type."""
        payload = await self.execute(space_id, environment_id, token, CONTENT_TYPES_QUERY)
        fields = payload["data"]["__schema"]["queryType"]["fields"] or []

        summaries = []
        for field in fields:
            field_type = field.get("type") or {}
            type_name = field_type.get("name") or ""
            is_collection = field["name"].endswith(COLLECTION_SUFFIX) or (
                field_type.get("kind") == "OBJECT" and type_name.endswith(COLLECTION_SUFFIX)
            )
            if not is_collection:
                continue
            summaries.append(
                ContentTypeSummary(
                    name=strip_collection_suffix(field["name"]),
                    query_name=field["name"],
                    description=field.get("description") or f"Content type for {field['name']}",
                )
            )

        logger.info(f"Discovered {len(summaries)} content types: space={space_id}, environment={environment_id}")
        return summaries

    async def discover_type_fields(
        self, type_name: str, space_id: str, environment_id: str, token: str
    ) -> ContentTypeSchema:
        """
        Fetch the fields of a named type.

        When the type does not exist the "Collection" variant of the name is
        tried once before ContentTypeNotFoundError is raised.
        """
        tried = candidate_type_names(type_name)
        for candidate in tried:
            payload = await self.execute(
                space_id, environment_id, token, TYPE_FIELDS_QUERY, {"name": candidate}
            )
            type_data = (payload.get("data") or {}).get("__type")
            if type_data:
                if candidate != type_name:
                    logger.info(f"Type '{type_name}' not found, using '{candidate}' instead")
                return self._parse_type(type_data)

        logger.warning(f"Type not found in schema: tried={tried}")
        raise ContentTypeNotFoundError(tried)

    @staticmethod
    def _parse_type(type_data: Dict[str, Any]) -> ContentTypeSchema:
        fields = [
            FieldDescriptor(
                name=field["name"],
                description=field.get("description") or f"Field {field['name']}",
                type=normalize_type(field.get("type")),
            )
            for field in type_data.get("fields") or []
        ]
        return ContentTypeSchema(
            content_type=type_data["name"],
            description=type_data.get("description"),
            fields=fields,
        )
