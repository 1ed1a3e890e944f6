"""
REST content store client.

Reads questions from a PostgREST-style ``/questions`` endpoint, e.g.:

    GET /questions?category=eq.Signale&order=id.asc
    GET /questions?or=(regulation_category.eq.DS 301,regulation_category.eq.both,regulation_category.is.null)

Responses are cached per query in a ``TTLCache`` owned by the client.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import httpx
from loguru import logger

from src.scheduling.errors import StoreUnavailable
from src.scheduling.models import REGULATION_ALL, REGULATION_BOTH, Question, QuestionFilter

from .cache import DEFAULT_MAX_ENTRIES, TTLCache
from .store import question_from_row

DEFAULT_TIMEOUT_SECONDS = 10.0


class HttpContentStore:
    """Content store backed by a REST API."""

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        cache_ttl_seconds: float = 300.0,
        cache_max_entries: int = DEFAULT_MAX_ENTRIES,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.BaseTransport | None = None,
    ):
        """
        Initialize the REST content store.

        Args:
            base_url: API root (``/questions`` is appended)
            api_key: Sent as ``apikey`` header and bearer token when set
            cache_ttl_seconds: Lifetime of cached query results (0 disables)
            cache_max_entries: Most distinct queries kept in the cache
            timeout_seconds: Default per-request timeout
            transport: Custom httpx transport (used by tests)
        """
        headers = {"Accept": "application/json"}
        if api_key:
            headers["apikey"] = api_key
            headers["Authorization"] = f"Bearer {api_key}"

        self.client = httpx.Client(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=httpx.Timeout(timeout_seconds),
            transport=transport,
        )
        self.timeout_seconds = timeout_seconds
        self.cache = TTLCache(cache_ttl_seconds, max_entries=cache_max_entries)

    def close(self) -> None:
        self.client.close()

    # =========================================================================
    # ContentStore
    # =========================================================================

    def get_questions(self, query: QuestionFilter, timeout: float | None = None) -> list[Question]:
        params: dict[str, str] = {"order": "id.asc"}
        if query.category:
            params["category"] = f"eq.{query.category}"
        if query.subcategories:
            params["sub_category"] = f"in.({','.join(query.subcategories)})"
        elif query.sub_category:
            params["sub_category"] = f"eq.{query.sub_category}"
        if query.regulation != REGULATION_ALL:
            params["or"] = (
                f"(regulation_category.eq.{query.regulation},"
                f"regulation_category.eq.{REGULATION_BOTH},"
                f"regulation_category.is.null)"
            )
        return self._fetch(params, timeout)

    def get_question_by_id(self, question_id: str, timeout: float | None = None) -> Question | None:
        rows = self._fetch({"id": f"eq.{question_id}"}, timeout)
        return rows[0] if rows else None

    def get_questions_by_ids(self, question_ids: Sequence[str], timeout: float | None = None) -> list[Question]:
        if not question_ids:
            return []
        ids = ",".join(sorted(set(question_ids)))
        return self._fetch({"id": f"in.({ids})", "order": "id.asc"}, timeout)

    # =========================================================================
    # Internals
    # =========================================================================

    def _fetch(self, params: dict[str, str], timeout: float | None = None) -> list[Question]:
        """
        GET ``/questions`` with the given filter.

        ``timeout`` caps this request below the client default, so a caller's
        remaining deadline bounds the wait. Results are cached as tuples and
        every caller gets a fresh list.
        """
        key = tuple(sorted(params.items()))
        cached = self.cache.get(key)
        if cached is not None:
            return list(cached)

        request_timeout: Any = httpx.USE_CLIENT_DEFAULT
        if timeout is not None:
            request_timeout = httpx.Timeout(min(timeout, self.timeout_seconds))

        try:
            response = self.client.get("/questions", params=params, timeout=request_timeout)
            response.raise_for_status()
            payload: Any = response.json()
        except httpx.HTTPStatusError as e:
            raise StoreUnavailable(f"Content store returned {e.response.status_code}") from e
        except httpx.TimeoutException as e:
            raise StoreUnavailable(f"Content store timed out: {e}") from e
        except httpx.HTTPError as e:
            raise StoreUnavailable(f"Content store request failed: {e}") from e

        if not isinstance(payload, list):
            raise StoreUnavailable("Content store returned an unexpected payload")

        questions = tuple(question_from_row(row) for row in payload)
        self.cache.set(key, questions)
        logger.debug(f"Fetched {len(questions)} questions from content store ({params})")
        return list(questions)
