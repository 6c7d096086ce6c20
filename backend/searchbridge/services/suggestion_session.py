"""
Search-as-you-type session for one input field.

Keystrokes are debounced; every dispatched query carries a sequence
number and a response is only rendered if its number is still the latest
issued. In-flight requests are never aborted, only ignored on arrival.
"""

import asyncio
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, MutableMapping, Optional, Protocol, Set

import httpx
from loguru import logger

from searchbridge.utils.exceptions import SuggestionRequestError


MIN_QUERY_LENGTH = 2
DEBOUNCE_SECONDS = 0.15
HISTORY_LIMIT = 5
VIEWED_LIMIT = 6

HISTORY_STORAGE_KEY = "searchbridge_search_history"
VIEWED_STORAGE_KEY = "searchbridge_viewed_products"

MESSAGES = {
    "no_results": 'No results found for "{query}".',
    "forbidden": "You are not allowed to search. Please reload the page.",
    "server_error": "The search server ran into a problem. Please try again.",
    "generic": "Search is unavailable right now. Please try again later.",
}


def error_message(status_code: int) -> str:
    """User-facing message for a failed suggestion request."""
    if status_code == 403:
        return MESSAGES["forbidden"]
    if status_code == 500:
        return MESSAGES["server_error"]
    return MESSAGES["generic"]


class SessionState(str, Enum):
    EMPTY = "empty"
    SHOWING_HISTORY = "showing_history"
    DEBOUNCING = "debouncing"
    IN_FLIGHT = "in_flight"
    RESULTS_SHOWN = "results_shown"
    NO_RESULTS_SHOWN = "no_results_shown"
    ERROR_SHOWN = "error_shown"


class _StoredList:
    """Most-recent-first bounded list, optionally mirrored to a key/value store."""

    def __init__(self, limit: int, storage: Optional[MutableMapping[str, str]], key: str):
        self.limit = limit
        self.storage = storage
        self.key = key
        self._items: List[Any] = self._load()

    def _load(self) -> List[Any]:
        if self.storage is None or self.key not in self.storage:
            return []
        try:
            items = json.loads(self.storage[self.key])
        except (TypeError, ValueError):
            logger.warning(f"Discarding unreadable stored list '{self.key}'")
            return []
        return list(items)[: self.limit] if isinstance(items, list) else []

    def _save(self) -> None:
        if self.storage is not None:
            self.storage[self.key] = json.dumps(self._items)

    @property
    def items(self) -> List[Any]:
        return list(self._items)

    def clear(self) -> None:
        self._items = []
        self._save()

    def __len__(self) -> int:
        return len(self._items)


class RecentSearches(_StoredList):
    def __init__(self, storage: Optional[MutableMapping[str, str]] = None, limit: int = HISTORY_LIMIT):
        super().__init__(limit, storage, HISTORY_STORAGE_KEY)

    def add(self, query: str) -> None:
        query = (query or "").strip()
        if len(query) < MIN_QUERY_LENGTH:
            return
        self._items = [query] + [item for item in self._items if item != query]
        self._items = self._items[: self.limit]
        self._save()


class ViewedProducts(_StoredList):
    def __init__(self, storage: Optional[MutableMapping[str, str]] = None, limit: int = VIEWED_LIMIT):
        super().__init__(limit, storage, VIEWED_STORAGE_KEY)

    def add(self, product: Dict[str, Any]) -> None:
        if not product or not product.get("id"):
            return
        entry = {
            "id": product["id"],
            "name": product.get("name"),
            "image": product.get("image"),
            "permalink": product.get("permalink"),
        }
        self._items = [entry] + [item for item in self._items if item.get("id") != entry["id"]]
        self._items = self._items[: self.limit]
        self._save()


class SuggestionApi(Protocol):
    async def suggest(self, query: str, suggest_type: str = "all") -> Dict[str, List[Dict[str, Any]]]:
        ...

    async def recommended(self) -> List[Dict[str, Any]]:
        ...

    async def log_search(self, query: str, has_results: bool) -> None:
        ...


class HttpSuggestionApi:
    """Talks to the bridge's own search endpoints."""

    def __init__(self, base_url: str, *, client: Optional[httpx.AsyncClient] = None, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
        self._client = None

    async def _call(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        try:
            response = await self._get_client().request(method, f"{self.base_url}{path}", **kwargs)
        except httpx.HTTPError as e:
            raise SuggestionRequestError(0, f"Request to {path} failed: {e}") from e
        if response.status_code >= 400:
            raise SuggestionRequestError(response.status_code, detail=response.text)
        return response.json()

    async def suggest(self, query: str, suggest_type: str = "all") -> Dict[str, List[Dict[str, Any]]]:
        return await self._call("POST", "/api/v1/search/suggest", json={"query": query, "type": suggest_type})

    async def recommended(self) -> List[Dict[str, Any]]:
        data = await self._call("GET", "/api/v1/search/recommended")
        return data.get("products") or []

    async def log_search(self, query: str, has_results: bool) -> None:
        await self._call("POST", "/api/v1/search/log", json={"query": query, "has_results": has_results})


@dataclass
class SuggestionView:
    state: SessionState = SessionState.EMPTY
    query: str = ""
    results: Dict[str, List[Dict[str, Any]]] = field(default_factory=dict)
    history: List[str] = field(default_factory=list)
    recommended: List[Dict[str, Any]] = field(default_factory=list)
    message: Optional[str] = None


def has_any_results(results: Dict[str, List[Dict[str, Any]]]) -> bool:
    return any(results.get(key) for key in ("products", "categories", "brands"))


class SuggestionSession:
    """State machine behind one search box."""

    def __init__(
        self,
        api: SuggestionApi,
        *,
        history: Optional[RecentSearches] = None,
        viewed: Optional[ViewedProducts] = None,
        debounce_seconds: float = DEBOUNCE_SECONDS,
        on_render: Optional[Callable[[SuggestionView], None]] = None,
    ):
        self.api = api
        self.history = history if history is not None else RecentSearches()
        self.viewed = viewed if viewed is not None else ViewedProducts()
        self.debounce_seconds = debounce_seconds
        self.on_render = on_render

        self.view = SuggestionView()
        self.query = ""
        self._sequence = 0
        self._timer: Optional[asyncio.Task] = None
        self._in_flight: Set[asyncio.Task] = set()
        self._logged_zero_results: Set[str] = set()

    @property
    def state(self) -> SessionState:
        return self.view.state

    @property
    def latest_sequence(self) -> int:
        return self._sequence

    def _render(self, **changes: Any) -> None:
        for key, value in changes.items():
            setattr(self.view, key, value)
        if self.on_render is not None:
            self.on_render(self.view)

    def _cancel_timer(self) -> None:
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None

    async def on_input(self, text: str) -> None:
        """Handle the field's new value after a keystroke."""
        self._cancel_timer()
        self.query = (text or "").strip()

        if len(self.query) < MIN_QUERY_LENGTH:
            # Supersede anything still in flight for the previous text
            self._sequence += 1
            await self._show_history()
            return

        self._render(state=SessionState.DEBOUNCING, query=self.query, message=None)
        self._timer = asyncio.create_task(self._debounce(self.query))

    async def _debounce(self, query: str) -> None:
        await asyncio.sleep(self.debounce_seconds)
        task = asyncio.create_task(self._dispatch(query))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    async def _show_history(self) -> None:
        state = SessionState.EMPTY if not self.query else SessionState.SHOWING_HISTORY
        history = self.history.items
        recommended: List[Dict[str, Any]] = []
        if not history:
            try:
                recommended = await self.api.recommended()
            except SuggestionRequestError as e:
                logger.warning(f"Could not load recommended products: {e}")
        self._render(state=state, query=self.query, results={}, history=history, recommended=recommended, message=None)

    async def _dispatch(self, query: str) -> None:
        self._sequence += 1
        sequence = self._sequence
        self._render(state=SessionState.IN_FLIGHT, query=query)

        try:
            results = await self.api.suggest(query, "all")
        except SuggestionRequestError as e:
            if sequence != self._sequence:
                return
            logger.warning(f"Suggestion request for '{query}' failed: {e}")
            self._render(state=SessionState.ERROR_SHOWN, query=query, results={}, message=error_message(e.status_code))
            return

        if sequence != self._sequence:
            logger.debug(f"Discarding stale suggestions #{sequence} for '{query}'")
            return

        if not has_any_results(results):
            self._render(
                state=SessionState.NO_RESULTS_SHOWN,
                query=query,
                results=results,
                message=MESSAGES["no_results"].format(query=query),
            )
            if query not in self._logged_zero_results:
                self._logged_zero_results.add(query)
                await self._log(query, False)
            return

        self._render(state=SessionState.RESULTS_SHOWN, query=query, results=results, message=None)

    async def _log(self, query: str, has_results: bool) -> None:
        try:
            await self.api.log_search(query, has_results)
        except Exception as e:
            # Analytics never affects the search box
            logger.warning(f"Search log failed for '{query}': {e}")

    async def submit(self, query: Optional[str] = None) -> None:
        """Explicit search (Enter key or button)."""
        self._cancel_timer()
        query = (query if query is not None else self.query).strip()
        if len(query) < MIN_QUERY_LENGTH:
            return
        await self._log(query, True)
        self.history.add(query)

    def record_view(self, product: Dict[str, Any]) -> None:
        self.viewed.add(product)

    async def settle(self) -> None:
        """Wait for the pending debounce timer and every request in flight."""
        if self._timer is not None:
            try:
                await self._timer
            except asyncio.CancelledError:
                pass
        while self._in_flight:
            await asyncio.gather(*list(self._in_flight), return_exceptions=True)

    async def close(self) -> None:
        self._cancel_timer()
        for task in list(self._in_flight):
            task.cancel()
        await asyncio.gather(*list(self._in_flight), return_exceptions=True)
        self._in_flight.clear()
