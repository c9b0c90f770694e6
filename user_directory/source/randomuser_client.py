# ==============================================
# RandomUserClient
# ==============================================
#
# PURPOSE:
#   Fetch pages of raw user records from a randomuser.me
#   compatible directory API.
#
# WHY THIS CLASS EXISTS:
#   The record store must not know anything about HTTP. It asks
#   for "page N of size M" and gets back a list of raw dicts.
#   A fixed seed is sent with every request so that the same
#   (page, page_size) always returns the same people, which the
#   favorite/tag merge depends on.
#
# CLASS: RandomUserClient
# -----------------------
#   Stateful — holds a requests.Session.
#
#   Constructor:
#   ------------
#   - __init__(base_url, seed, exclude_fields, timeout_seconds, session=None)
#
#   Methods:
#   --------
#   - get_page(page: int, page_size: int) -> list[dict]
#       Blocking HTTP GET, returns the "results" list.
#
#   - fetch_page(page: int, page_size: int) -> list[dict]   (async)
#       Runs get_page() in a worker thread so the event loop
#       is free while the request is in flight.
#
#   - close() -> None
#
#   Failures (connection, HTTP status, invalid JSON, missing
#   "results") are raised as SourceUnavailableError.
#
# ==============================================

import asyncio
from typing import Optional

import requests
from loguru import logger

from user_directory.config import SourceConfig
from user_directory.errors import SourceUnavailableError


class RandomUserClient:
    def __init__(
        self,
        base_url: str = "https://randomuser.me/api",
        seed: str = "user-directory",
        exclude_fields: str = "login,registered,nat",
        timeout_seconds: float = 10.0,
        session: Optional[requests.Session] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.seed = seed
        self.exclude_fields = exclude_fields
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, config: SourceConfig) -> "RandomUserClient":
        return cls(
            base_url=config.base_url,
            seed=config.seed,
            exclude_fields=config.exclude_fields,
            timeout_seconds=config.timeout_seconds
        )

    def build_params(self, page: int, page_size: int) -> dict:
        """
        Query parameters for one page request.

        Args:
            page: 1-based page number
            page_size: Number of records per page

        Returns:
            Dictionary of query parameters
        """
        if page < 1:
            raise ValueError(f"page must be >= 1, got {page}")
        if page_size < 1:
            raise ValueError(f"page_size must be > 0, got {page_size}")

        params = {
            "page": page,
            "results": page_size,
            "seed": self.seed,
        }
        if self.exclude_fields:
            params["exc"] = self.exclude_fields
        return params

    def get_page(self, page: int, page_size: int) -> list[dict]:
        """
        Fetch one page of raw records.

        Args:
            page: 1-based page number
            page_size: Number of records per page

        Returns:
            List of raw record dictionaries, in source order

        Raises:
            SourceUnavailableError: transport, HTTP or payload failure
        """
        params = self.build_params(page, page_size)
        url = f"{self.base_url}/"

        try:
            response = self.session.get(url, params=params, timeout=self.timeout_seconds)
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as e:
            logger.error(f"Error fetching users page {page}: {e}")
            raise SourceUnavailableError(f"Directory request failed: {e}") from e
        except ValueError as e:
            logger.error(f"Directory returned invalid JSON for page {page}: {e}")
            raise SourceUnavailableError(f"Invalid JSON payload: {e}") from e

        results = payload.get("results") if isinstance(payload, dict) else None
        if not isinstance(results, list):
            raise SourceUnavailableError("Directory payload has no 'results' list")

        logger.debug(f"Fetched {len(results)} raw records (page={page}, size={page_size})")
        return results

    async def fetch_page(self, page: int, page_size: int) -> list[dict]:
        return await asyncio.to_thread(self.get_page, page, page_size)

    def close(self) -> None:
        self.session.close()

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
        return False
