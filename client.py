import logging
from typing import Any, Dict, List, Optional

import httpx

from book import Book
from config import settings
from reader import Reader

logger = logging.getLogger(__name__)


class LibraryAPIError(Exception):
    """A request to the lending API failed; ``message`` is what the server said."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class LibraryClient:
    """Async HTTP client for the lending API.

    Requests are never retried; a failure is reported to the caller as
    LibraryAPIError carrying the server's error text.
    """

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        limits = httpx.Limits(
            max_keepalive_connections=5,
            max_connections=10,
            keepalive_expiry=30.0,
        )
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.base_url,
            limits=limits,
            timeout=httpx.Timeout(timeout or settings.client_timeout),
            transport=transport,
        )

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.RequestError as exc:
            logger.error("%s %s failed: %s", method, path, exc)
            raise LibraryAPIError(f"Connection error: {exc}") from exc

        try:
            data = response.json()
        except ValueError:
            data = None

        if response.is_error:
            message = data.get("error") if isinstance(data, dict) else None
            raise LibraryAPIError(message or f"Request failed with status {response.status_code}",
                                  status_code=response.status_code)
        return data

    # --- Books ---
    async def list_books(self) -> List[Book]:
        return [Book.from_dict(item) for item in await self._request("GET", "/books")]

    async def add_book(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """POST a book form (camelCase keys); returns {message, id}."""
        return await self._request("POST", "/books", json=data)

    async def delete_book(self, book_id: int) -> Dict[str, Any]:
        return await self._request("DELETE", f"/books/{book_id}")

    # --- Readers ---
    async def list_readers(self) -> List[Reader]:
        return [Reader.from_dict(item) for item in await self._request("GET", "/readers")]

    async def register_reader(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", "/readers", json=data)

    # --- Lending ---
    async def borrow_book(self, book_id: int, phone: str) -> Dict[str, Any]:
        return await self._request("POST", "/borrow", json={"bookId": book_id, "phone": phone})

    async def return_book(self, book_id: int) -> Dict[str, Any]:
        return await self._request("POST", "/return", json={"bookId": book_id})

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
