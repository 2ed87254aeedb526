"""Tests for the cross-content-type search fan-out."""

import pytest

from conftest import ASSET_TYPE, PAGE_ARTICLE_TYPE, QUERY_FIELDS, TOPIC_CATEGORY_TYPE, FakeContentfulAPI, obj
from metadata_cache import CacheUnavailableError, MetadataCache
from resolver import ContentTypeResolver
from smart_search import SearchOrchestrator

ASSET_QUERY_FIELD = {"name": "assetCollection", "description": "Assets", "type": obj("AssetCollection")}


def search_payload(collection, *items):
    return {"data": {collection: {"items": list(items)}}}


async def loaded_orchestrator(api):
    client = api.client()
    cache = MetadataCache()
    await cache.load(client, "test-space", "master", "test-token")
    api.calls.clear()
    return SearchOrchestrator(cache, client, ContentTypeResolver(cache, client))


@pytest.fixture
def api_with_assets():
    return FakeContentfulAPI(
        query_fields=QUERY_FIELDS + [ASSET_QUERY_FIELD],
        types=[PAGE_ARTICLE_TYPE, TOPIC_CATEGORY_TYPE, ASSET_TYPE],
    )


@pytest.mark.asyncio
async def test_types_without_text_fields_are_not_queried():
    api = FakeContentfulAPI(
        query_fields=[QUERY_FIELDS[1], ASSET_QUERY_FIELD],
        types=[PAGE_ARTICLE_TYPE, ASSET_TYPE],
    )
    api.search_results["pageArticleCollection"] = search_payload(
        "pageArticleCollection", {"sys": {"id": "a1"}, "title": "Hello", "slug": "hello", "body": "Hello there"}
    )
    search = await loaded_orchestrator(api)

    response = await search.smart_search("hello", "test-space", "master", "test-token")

    assert api.calls == ["search:pageArticleCollection"]
    assert response.total_content_types_searched == 2
    assert response.content_types_with_results == 1
    assert response.results[0].content_type == "pageArticle"


@pytest.mark.asyncio
async def test_items_carry_id_and_searched_fields(api):
    api.search_results["pageArticleCollection"] = search_payload(
        "pageArticleCollection", {"sys": {"id": "a1"}, "title": "Hello", "slug": "hello", "body": "Hi"}
    )
    search = await loaded_orchestrator(api)

    response = await search.smart_search("hello", "test-space", "master", "test-token")

    assert response.results[0].items == [{"id": "a1", "title": "Hello", "slug": "hello", "body": "Hi"}]
    request_body = api.requests[-1].content
    assert b'"searchTerm": "hello"' in request_body or b'"searchTerm":"hello"' in request_body


@pytest.mark.asyncio
async def test_results_follow_content_type_order(api):
    api.search_results["topicCategoryCollection"] = search_payload(
        "topicCategoryCollection", {"sys": {"id": "t1"}, "name": "News", "description": None}
    )
    api.search_results["pageArticleCollection"] = search_payload(
        "pageArticleCollection", {"sys": {"id": "a1"}, "title": "News today", "slug": None, "body": None}
    )
    search = await loaded_orchestrator(api)

    response = await search.smart_search("news", "test-space", "master", "test-token")

    assert [r.content_type for r in response.results] == ["pageArticle", "topicCategory"]
    assert response.content_types_with_results == 2


@pytest.mark.asyncio
@pytest.mark.parametrize("failure", [500, {"errors": [{"message": "Query too complex"}]}])
async def test_failing_type_is_isolated(api, failure):
    api.search_results["pageArticleCollection"] = failure
    api.search_results["topicCategoryCollection"] = search_payload(
        "topicCategoryCollection", {"sys": {"id": "t1"}, "name": "News", "description": "All news"}
    )
    search = await loaded_orchestrator(api)

    response = await search.smart_search("news", "test-space", "master", "test-token")

    assert response.total_content_types_searched == 2
    assert [r.content_type for r in response.results] == ["topicCategory"]


@pytest.mark.asyncio
async def test_content_type_filter(api_with_assets):
    search = await loaded_orchestrator(api_with_assets)

    response = await search.smart_search(
        "x", "test-space", "master", "test-token", content_types=["topicCategory", "unknown"]
    )

    assert response.total_content_types_searched == 1
    assert api_with_assets.calls == ["search:topicCategoryCollection"]


@pytest.mark.asyncio
async def test_limit_is_inlined(api):
    search = await loaded_orchestrator(api)

    await search.smart_search("x", "test-space", "master", "test-token", content_types=["pageArticle"], limit=2)

    assert b"limit: 2" in api.requests[-1].content


@pytest.mark.asyncio
async def test_empty_results_are_omitted(api):
    search = await loaded_orchestrator(api)

    response = await search.smart_search("nothing", "test-space", "master", "test-token")

    assert response.results == []
    assert response.content_types_with_results == 0
    assert response.model_dump(by_alias=True)["totalContentTypesSearched"] == 2


@pytest.mark.asyncio
async def test_requires_cache():
    api = FakeContentfulAPI()
    client = api.client()
    cache = MetadataCache()
    search = SearchOrchestrator(cache, client, ContentTypeResolver(cache, client))

    with pytest.raises(CacheUnavailableError):
        await search.smart_search("x", "test-space", "master", "test-token")
    assert api.calls == []


def test_search_api_is_documented():
    assert SearchOrchestrator.__doc__
    assert "Returns:" in SearchOrchestrator.smart_search.__doc__
    assert "Raises:" in ContentTypeResolver.resolve.__doc__
