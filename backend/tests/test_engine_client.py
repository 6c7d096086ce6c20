import json

import httpx
import pytest

from searchbridge.core.config import EngineConnection
from searchbridge.services.collections import CollectionType, build_schema
from searchbridge.services.engine_client import EngineClient
from searchbridge.utils.exceptions import EngineConnectionError, EngineError, PartialImportFailure


@pytest.mark.asyncio
async def test_requests_carry_api_key_and_base_url(engine_client, fake_engine):
    assert await engine_client.test_connection() is True

    request = fake_engine.requests[-1]
    assert str(request.url) == "http://engine.test:8108/health"
    assert request.headers["X-TYPESENSE-API-KEY"] == "test-key"


@pytest.mark.asyncio
async def test_collection_name_applies_prefix():
    connection = EngineConnection("http", "engine.test", 8108, "k", collection_prefix="shop_")
    client = EngineClient(connection)
    assert client.collection_name("products") == "shop_products"
    assert EngineClient(EngineConnection("http", "h", 1, "k")).collection_name("products") == "products"


@pytest.mark.asyncio
async def test_create_collection_tolerates_existing(engine_client, fake_engine):
    schema = build_schema(CollectionType.BRANDS, "brands")

    created = await engine_client.create_collection(schema)
    assert created["name"] == "brands"
    assert created["num_documents"] == 0

    again = await engine_client.create_collection(schema)
    assert again == {"name": "brands", "status": "exists"}


@pytest.mark.asyncio
async def test_delete_collection_twice_is_not_an_error(engine_client, fake_engine):
    fake_engine.add_collection("products")

    first = await engine_client.delete_collection("products")
    assert first["name"] == "products"

    second = await engine_client.delete_collection("products")
    assert second == {"status": "deleted"}


@pytest.mark.asyncio
async def test_import_reports_partial_failure_and_keeps_successes(engine_client, fake_engine):
    fake_engine.add_collection("products", [{"name": "name", "type": "string"}])
    documents = [
        {"id": "1", "name": "Redmi Note 13"},
        {"id": "2"},  # malformed: missing name
        {"id": "3", "name": "Redmi 12"},
        {"id": "4"},  # malformed
        {"id": "5", "name": "Poco X6"},
    ]

    with pytest.raises(PartialImportFailure) as exc_info:
        await engine_client.import_documents("products", documents)

    error = exc_info.value
    assert error.success_count == 3
    assert error.failure_count == 2
    assert "`name`" in error.first_error
    assert "Imported 3 documents, but 2 failed" in error.message
    # No rollback: the well-formed documents are stored
    assert set(fake_engine.documents["products"]) == {"1", "3", "5"}


@pytest.mark.asyncio
async def test_import_sends_ndjson_upsert(engine_client, fake_engine):
    fake_engine.add_collection("products")

    count = await engine_client.import_documents("products", [{"id": "1", "name": "A"}, {"id": "2", "name": "B"}])

    assert count == 2
    request = fake_engine.requests[-1]
    assert request.url.path == "/collections/products/documents/import"
    assert request.url.params["action"] == "upsert"
    lines = request.content.decode().strip().split("\n")
    assert [json.loads(line)["id"] for line in lines] == ["1", "2"]


@pytest.mark.asyncio
async def test_import_of_nothing_makes_no_request(engine_client, fake_engine):
    assert await engine_client.import_documents("products", []) == 0
    assert fake_engine.requests == []


@pytest.mark.asyncio
async def test_upsert_and_delete_document(engine_client, fake_engine):
    fake_engine.add_collection("categories")

    await engine_client.upsert_document("categories", {"id": "7", "name": "Phones"})
    assert fake_engine.documents["categories"]["7"]["name"] == "Phones"
    assert fake_engine.requests[-1].url.params["action"] == "upsert"

    await engine_client.delete_document("categories", "7")
    assert fake_engine.documents["categories"] == {}
    # Already gone
    assert (await engine_client.delete_document("categories", "7"))["status"] == "deleted"


@pytest.mark.asyncio
async def test_search_passes_querystring(engine_client, fake_engine):
    fake_engine.add_collection("products")
    await engine_client.upsert_document("products", {"id": "1", "name": "Redmi Note 13"})

    result = await engine_client.search("products", {"q": "redmi", "query_by": "name", "page": 1, "per_page": 12})

    assert result["found"] == 1
    assert result["hits"][0]["document"]["id"] == "1"
    params = fake_engine.search_requests()[-1].url.params
    assert params["q"] == "redmi"
    assert params["per_page"] == "12"


@pytest.mark.asyncio
async def test_non_2xx_becomes_engine_error(engine_client, fake_engine):
    fake_engine.fail_with = 503

    with pytest.raises(EngineError) as exc_info:
        await engine_client.search("products", {"q": "x"})

    assert exc_info.value.status_code == 503
    assert "Injected failure" in exc_info.value.body


@pytest.mark.asyncio
async def test_missing_collection_search_is_engine_error(engine_client):
    with pytest.raises(EngineError) as exc_info:
        await engine_client.search("nope", {"q": "x"})
    assert exc_info.value.status_code == 404


@pytest.mark.asyncio
async def test_timeout_becomes_connection_error(engine_client, fake_engine):
    fake_engine.fail_with = httpx.ReadTimeout("timed out")

    with pytest.raises(EngineConnectionError) as exc_info:
        await engine_client.search("products", {"q": "x"})
    assert "timed out" in exc_info.value.message


@pytest.mark.asyncio
async def test_connection_refused_becomes_connection_error(engine_client, fake_engine):
    fake_engine.fail_with = httpx.ConnectError("connection refused")

    with pytest.raises(EngineConnectionError):
        await engine_client.retrieve_collections()


@pytest.mark.asyncio
async def test_corrupt_body_becomes_connection_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, headers={"Content-Encoding": "gzip"}, content=b"not gzip", request=request)

    connection = EngineConnection("http", "engine.test", 8108, "test-key")
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
        client = EngineClient(connection, client=http_client)
        with pytest.raises(EngineConnectionError):
            await client.search("products", {"q": "x"})


@pytest.mark.asyncio
async def test_presets_use_prefixed_names(fake_engine):
    connection = EngineConnection("http", "engine.test", 8108, "test-key", collection_prefix="shop_")
    async with httpx.AsyncClient(transport=fake_engine.transport()) as http_client:
        client = EngineClient(connection, client=http_client)
        await client.upsert_preset("listing", {"query_by": "name,sku"})
        preset = await client.retrieve_preset("listing")

    assert preset["name"] == "shop_listing"
    assert preset["value"] == {"query_by": "name,sku"}
    assert fake_engine.requests[0].method == "PUT"
