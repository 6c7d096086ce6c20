"""
HTTP client for the typo-tolerant search engine (Typesense wire protocol).
"""

from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List, Optional

import httpx
from loguru import logger

from searchbridge.core.config import EngineConnection
from searchbridge.utils.exceptions import (
    EngineConnectionError,
    EngineError,
    PartialImportFailure,
)


class EngineClient:
    """One coroutine per engine primitive; holds no state besides the connection."""

    API_KEY_HEADER = "X-TYPESENSE-API-KEY"

    def __init__(
        self,
        connection: EngineConnection,
        *,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.connection = connection
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.connection.timeout)
        return self._client

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
        self._client = None

    def collection_name(self, base_name: str) -> str:
        """Return the collection name with the configured prefix applied."""
        prefix = self.connection.collection_prefix
        if not prefix:
            return base_name
        return f"{prefix}{base_name}"

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json_body: Any = None,
        content: Optional[str] = None,
    ) -> httpx.Response:
        url = f"{self.connection.base_url}{path}"
        headers = {
            self.API_KEY_HEADER: self.connection.api_key,
            "Content-Type": "application/json",
        }
        if json_body is not None:
            content = json.dumps(json_body)

        try:
            return await self._get_client().request(
                method,
                url,
                params=params,
                content=content,
                headers=headers,
                timeout=self.connection.timeout,
            )
        except httpx.TimeoutException as e:
            raise EngineConnectionError(
                f"{method} {path} timed out after {self.connection.timeout}s"
            ) from e
        except httpx.RequestError as e:
            # Transport failures and undecodable bodies alike
            raise EngineConnectionError(f"{method} {path}: {e}") from e

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            return {}

    async def health(self) -> Dict[str, Any]:
        response = await self._request("GET", "/health")
        if response.status_code != 200:
            raise EngineError(response.status_code, response.text, operation="Health check")
        return self._decode(response)

    async def test_connection(self) -> bool:
        """Return True when the engine reports itself healthy."""
        body = await self.health()
        return bool(isinstance(body, dict) and body.get("ok") is True)

    async def retrieve_collections(self) -> List[Dict[str, Any]]:
        response = await self._request("GET", "/collections")
        if response.status_code != 200:
            raise EngineError(response.status_code, response.text, operation="Retrieve collections")
        return self._decode(response) or []

    async def get_collection(self, name: str) -> Dict[str, Any]:
        response = await self._request("GET", f"/collections/{name}")
        if response.status_code != 200:
            raise EngineError(response.status_code, response.text, operation="Get collection")
        return self._decode(response)

    async def create_collection(self, schema: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create a collection from its schema.

        An already-existing collection is reported as ``status=exists``
        instead of an error so that create can be re-run safely.
        """
        response = await self._request("POST", "/collections", json_body=schema)
        if response.status_code in (200, 201):
            return self._decode(response)
        if response.status_code == 409:
            logger.info(f"Collection {schema.get('name')} already exists")
            return {"name": schema.get("name"), "status": "exists"}
        raise EngineError(response.status_code, response.text, operation="Create collection")

    async def delete_collection(self, name: str) -> Dict[str, Any]:
        response = await self._request("DELETE", f"/collections/{name}")
        if response.status_code == 200:
            return self._decode(response)
        if response.status_code == 404:
            # Nothing to delete
            return {"status": "deleted"}
        raise EngineError(response.status_code, response.text, operation="Delete collection")

    async def upsert_document(self, collection: str, document: Dict[str, Any]) -> Dict[str, Any]:
        response = await self._request(
            "POST",
            f"/collections/{collection}/documents",
            params={"action": "upsert"},
            json_body=document,
        )
        if response.status_code in (200, 201):
            return self._decode(response)
        raise EngineError(response.status_code, response.text, operation="Upsert document")

    async def import_documents(self, collection: str, documents: Iterable[Dict[str, Any]]) -> int:
        """
        Upsert documents in one newline-delimited JSON import.

        Returns the number of imported documents. When any line is rejected
        a PartialImportFailure is raised; accepted lines are not rolled back.
        """
        lines = [json.dumps(document) for document in documents]
        if not lines:
            return 0

        response = await self._request(
            "POST",
            f"/collections/{collection}/documents/import",
            params={"action": "upsert"},
            content="\n".join(lines) + "\n",
        )
        if response.status_code != 200:
            raise EngineError(response.status_code, response.text, operation="Import documents")

        success_count = 0
        errors: List[str] = []
        for line in response.text.strip().splitlines():
            if not line.strip():
                continue
            try:
                result = json.loads(line)
            except ValueError:
                errors.append(f"Unparseable import result: {line[:200]}")
                continue
            if isinstance(result, dict) and result.get("success") is False:
                errors.append(result.get("error") or "Unknown error")
            else:
                success_count += 1

        if errors:
            raise PartialImportFailure(success_count, len(errors), errors[0])

        return success_count

    async def delete_document(self, collection: str, document_id: str) -> Dict[str, Any]:
        response = await self._request("DELETE", f"/collections/{collection}/documents/{document_id}")
        if response.status_code == 200:
            return self._decode(response)
        if response.status_code == 404:
            return {"id": document_id, "status": "deleted"}
        raise EngineError(response.status_code, response.text, operation="Delete document")

    async def search(self, collection: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """Run a search and return the decoded engine payload."""
        response = await self._request(
            "GET",
            f"/collections/{collection}/documents/search",
            params=params,
        )
        if response.status_code != 200:
            raise EngineError(response.status_code, response.text, operation="Search")
        return self._decode(response)

    async def upsert_preset(self, preset_name: str, value: Dict[str, Any]) -> Dict[str, Any]:
        preset_id = self.collection_name(preset_name)
        response = await self._request("PUT", f"/presets/{preset_id}", json_body={"value": value})
        if response.status_code in (200, 201):
            return self._decode(response)
        raise EngineError(response.status_code, response.text, operation="Upsert preset")

    async def retrieve_preset(self, preset_name: str) -> Dict[str, Any]:
        preset_id = self.collection_name(preset_name)
        response = await self._request("GET", f"/presets/{preset_id}")
        if response.status_code == 200:
            return self._decode(response)
        raise EngineError(response.status_code, response.text, operation="Retrieve preset")
