"""
Shared fixtures for the Contentful GraphQL MCP Server tests.

Remote calls never leave the process: FakeContentfulAPI is plugged into the
GraphQL client through httpx.MockTransport and answers by looking at the
GraphQL document it receives.
"""

import json
import re

import httpx
import pytest
from graphql import build_schema, get_introspection_query, graphql_sync

from config import ServerConfig
from graphql_client import ContentfulGraphQLClient
from metadata_cache import MetadataCache
from tool_handlers import GraphQLToolHandlers


def scalar(name):
    return {"kind": "SCALAR", "name": name, "ofType": None}


def non_null(of_type):
    return {"kind": "NON_NULL", "name": None, "ofType": of_type}


def list_of(of_type):
    return {"kind": "LIST", "name": None, "ofType": of_type}


def obj(name):
    return {"kind": "OBJECT", "name": name, "ofType": None}


PAGE_ARTICLE_TYPE = {
    "name": "PageArticle",
    "description": "Page Article content type",
    "fields": [
        {"name": "sys", "description": "System fields", "type": non_null(obj("Sys"))},
        {"name": "title", "description": "Title", "type": scalar("String")},
        {"name": "slug", "description": "URL slug", "type": scalar("String")},
        {"name": "body", "description": "Body", "type": scalar("String")},
        {"name": "author", "description": "Author name", "type": scalar("String")},
        {"name": "tags", "description": "Tags", "type": list_of(scalar("String"))},
    ],
}

TOPIC_CATEGORY_TYPE = {
    "name": "TopicCategory",
    "description": "Topic Category content type",
    "fields": [
        {"name": "sys", "description": "System fields", "type": non_null(obj("Sys"))},
        {"name": "name", "description": "Category name", "type": scalar("String")},
        {"name": "description", "description": None, "type": scalar("String")},
    ],
}

ASSET_TYPE = {
    "name": "Asset",
    "description": "Assets",
    "fields": [
        {"name": "sys", "description": "System fields", "type": non_null(obj("Sys"))},
        {"name": "width", "description": "Width", "type": scalar("Int")},
    ],
}

QUERY_FIELDS = [
    {
        "name": "pageArticle",
        "description": "Single page article",
        "type": obj("PageArticle"),
    },
    {
        "name": "pageArticleCollection",
        "description": "Page Article Collection",
        "type": {"kind": "OBJECT", "name": "PageArticleCollection", "ofType": None},
    },
    {
        "name": "topicCategoryCollection",
        "description": None,
        "type": {"kind": "OBJECT", "name": "TopicCategoryCollection", "ofType": None},
    },
]

CONTENTFUL_SDL = """
type Sys { id: String! }

type PageArticle {
  sys: Sys!
  title: String
  slug: String
  body: String
  author: String
  tags: [String]
}

type PageArticleCollection { items: [PageArticle]! total: Int! }

input PageArticleFilter {
  title_contains: String
  slug_contains: String
  body_contains: String
  author_contains: String
  OR: [PageArticleFilter]
}

type TopicCategory { sys: Sys! name: String description: String }

type TopicCategoryCollection { items: [TopicCategory]! total: Int! }

input TopicCategoryFilter {
  name_contains: String
  description_contains: String
  OR: [TopicCategoryFilter]
}

type Query {
  pageArticle(id: String!): PageArticle
  pageArticleCollection(limit: Int, where: PageArticleFilter): PageArticleCollection
  topicCategory(id: String!): TopicCategory
  topicCategoryCollection(limit: Int, where: TopicCategoryFilter): TopicCategoryCollection
}
"""


def contentful_schema():
    return build_schema(CONTENTFUL_SDL)


def introspection_data():
    return graphql_sync(contentful_schema(), get_introspection_query()).data


class FakeContentfulAPI:
    """
    Stand-in for the Contentful GraphQL endpoint.

    Every handled request is recorded in `calls` as a short label:
    "content_types", "type:<Name>", "introspection", "search:<collectionField>"
    or "query".
    """

    def __init__(self, query_fields=None, types=None):
        self.query_fields = QUERY_FIELDS if query_fields is None else query_fields
        self.types = {t["name"]: t for t in (types if types is not None else [PAGE_ARTICLE_TYPE, TOPIC_CATEGORY_TYPE])}
        self.failing_types = {}
        self.search_results = {}
        self.content_types_status = 200
        self.introspection = None
        self.query_response = {"data": {}}
        self.calls = []
        self.requests = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self.requests.append(request)
        query = body["query"]

        if "IntrospectionQuery" in query:
            self.calls.append("introspection")
            if self.introspection is None:
                return httpx.Response(500, text="Introspection disabled")
            return httpx.Response(200, json={"data": self.introspection})

        if "__schema" in query:
            self.calls.append("content_types")
            if self.content_types_status != 200:
                return httpx.Response(self.content_types_status, text="Unauthorized")
            return httpx.Response(200, json={"data": {"__schema": {"queryType": {"fields": self.query_fields}}}})

        if "__type" in query:
            name = body["variables"]["name"]
            self.calls.append(f"type:{name}")
            if name in self.failing_types:
                return httpx.Response(self.failing_types[name], text="Not Found")
            return httpx.Response(200, json={"data": {"__type": self.types.get(name)}})

        match = re.search(r"(\w+Collection)\(where", query)
        if match:
            collection = match.group(1)
            self.calls.append(f"search:{collection}")
            result = self.search_results.get(collection, {"data": {collection: {"items": []}}})
            if isinstance(result, int):
                return httpx.Response(result, text="Server Error")
            return httpx.Response(200, json=result)

        self.calls.append("query")
        if isinstance(self.query_response, int):
            return httpx.Response(self.query_response, text="Bad Request")
        return httpx.Response(200, json=self.query_response)

    def client(self) -> ContentfulGraphQLClient:
        return ContentfulGraphQLClient(http_client=httpx.AsyncClient(transport=httpx.MockTransport(self.handler)))


@pytest.fixture
def api():
    return FakeContentfulAPI()


@pytest.fixture
def config():
    return ServerConfig(space_id="test-space", environment_id="master", access_token="test-token")


@pytest.fixture
def cache():
    return MetadataCache()


@pytest.fixture
def handlers(api, config, cache):
    return GraphQLToolHandlers(config, api.client(), cache)


def tool_text(response: dict) -> str:
    return response["content"][0]["text"]


def tool_json(response: dict):
    return json.loads(tool_text(response))
