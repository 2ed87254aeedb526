"""Tests for the in-memory metadata cache."""

import asyncio
from datetime import datetime

import pytest

from conftest import FakeContentfulAPI, introspection_data
from metadata_cache import MetadataCache, graphql_type_name, run_refresh_loop, stop_refresh_loop


def test_graphql_type_name():
    assert graphql_type_name("pageArticle") == "PageArticle"
    assert graphql_type_name("") == ""


def test_empty_cache_status(cache):
    status = cache.status()

    assert status.available is False
    assert status.content_types_count == 0
    assert status.schemas_count == 0
    assert status.last_update is None
    assert cache.get_content_types() is None


@pytest.mark.asyncio
async def test_load_populates_content_types_and_schemas(api, cache):
    loaded = await cache.load(api.client(), "test-space", "master", "test-token")

    assert loaded is True
    assert cache.is_available()
    assert [ct.name for ct in cache.get_content_types()] == ["pageArticle", "topicCategory"]
    assert cache.get_schema("PageArticle").content_type == "PageArticle"
    assert cache.get_schema("pageArticle").content_type == "PageArticle"
    assert len(cache.get_schema("topicCategory").fields) == 3

    status = cache.status()
    assert status.content_types_count == 2
    assert status.schemas_count == 2
    assert isinstance(status.last_update, datetime)
    assert api.calls[0] == "content_types"
    assert sorted(api.calls[1:]) == ["type:PageArticle", "type:TopicCategory"]


@pytest.mark.asyncio
async def test_failed_discovery_leaves_cache_empty(api, cache):
    api.content_types_status = 401

    loaded = await cache.load(api.client(), "test-space", "master", "bad-token")

    assert loaded is False
    assert not cache.is_available()
    assert cache.get_content_types() is None


@pytest.mark.asyncio
async def test_failed_refresh_keeps_previous_state(api, cache):
    await cache.load(api.client(), "test-space", "master", "test-token")
    before = cache.status()

    api.content_types_status = 500
    await cache.load(api.client(), "test-space", "master", "test-token")

    assert cache.is_available()
    assert cache.status() == before


@pytest.mark.asyncio
async def test_one_failing_type_does_not_abort_load(api, cache):
    api.failing_types["TopicCategory"] = 404

    await cache.load(api.client(), "test-space", "master", "test-token")

    assert len(cache.get_content_types()) == 2
    assert cache.get_schema("pageArticle") is not None
    assert cache.get_schema("topicCategory") is None
    assert cache.is_available()


@pytest.mark.asyncio
async def test_no_content_types_is_not_available():
    api = FakeContentfulAPI(query_fields=[])
    cache = MetadataCache()

    await cache.load(api.client(), "test-space", "master", "test-token")

    assert cache.get_content_types() == []
    assert not cache.is_available()


@pytest.mark.asyncio
async def test_schema_keyed_by_resolved_collection_name():
    collection_type = {"name": "TopicCategoryCollection", "description": None, "fields": [
        {"name": "total", "description": None, "type": {"kind": "SCALAR", "name": "Int"}},
    ]}
    api = FakeContentfulAPI(types=[collection_type])
    cache = MetadataCache()

    await cache.load(api.client(), "test-space", "master", "test-token")

    assert set(cache.schemas) == {"TopicCategoryCollection"}


@pytest.mark.asyncio
async def test_clear_then_reload_is_idempotent(api, cache):
    client = api.client()
    cache.clear()
    await cache.load(client, "test-space", "master", "test-token")
    first = cache.status()
    first_schemas = dict(cache.schemas)

    cache.clear()
    assert not cache.is_available()
    await cache.load(client, "test-space", "master", "test-token")
    second = cache.status()

    assert first.content_types_count == second.content_types_count
    assert first.schemas_count == second.schemas_count
    assert cache.schemas == first_schemas


@pytest.mark.asyncio
async def test_refresh_also_loads_validation_schema(api, cache):
    api.introspection = introspection_data()

    await cache.refresh(api.client(), "test-space", "master", "test-token")

    assert cache.is_available()
    assert cache.graphql_schema is not None
    cache.clear()
    assert cache.graphql_schema is None


@pytest.mark.asyncio
async def test_refresh_loop_reloads_until_cancelled(api, cache):
    task = asyncio.create_task(
        run_refresh_loop(cache, api.client(), "test-space", "master", "test-token", interval=0.01)
    )
    for _ in range(100):
        await asyncio.sleep(0.01)
        if api.calls.count("content_types") >= 2:
            break
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert api.calls.count("content_types") >= 2
    assert cache.is_available()


@pytest.mark.asyncio
async def test_stop_refresh_loop_waits_for_cancellation(api, cache):
    task = asyncio.create_task(
        run_refresh_loop(cache, api.client(), "test-space", "master", "test-token", interval=60)
    )
    await asyncio.sleep(0)

    await stop_refresh_loop(task)

    assert task.done()
    assert task.cancelled()
    assert api.calls == []
