"""Single-slot cache for the metadata repository document."""

import logging
import time
from collections.abc import Callable

from pydantic import ValidationError

from mcp_blockchain_metadata.core.errors import UpstreamError
from mcp_blockchain_metadata.core.models import Repository, TemplatesRepository
from mcp_blockchain_metadata.sources.cache import CacheEntry, SingleFlight
from mcp_blockchain_metadata.sources.fetcher import RemoteFetcher

logger = logging.getLogger(__name__)

REPOSITORY_CACHE_TTL = 5 * 60


class RepositoryCache:
    """
    Caches the repository document for a fixed TTL.

    A fresh document is returned without I/O. Once stale, one fetch
    refreshes the slot; concurrent callers during a refresh share it. A
    failed refresh raises, it never serves the stale document.

    Parameters
    ----------
    fetcher : RemoteFetcher
        HTTP fetcher
    url : str
        Repository document URL
    ttl : float
        Time-to-live in seconds
    timeout : float
        Fetch timeout in seconds
    clock : Callable[[], float]
        Clock used for expiry

    """

    def __init__(
        self,
        fetcher: RemoteFetcher,
        url: str,
        ttl: float = REPOSITORY_CACHE_TTL,
        timeout: float = 10.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.fetcher = fetcher
        self.url = url
        self.ttl = ttl
        self.timeout = timeout
        self._clock = clock
        self._slot: CacheEntry[Repository] | None = None
        self._flight = SingleFlight()

    @property
    def expires_at(self) -> float | None:
        """Expiry of the cached document, or None when nothing is cached."""
        return self._slot.expires_at if self._slot is not None else None

    async def get_repository(self) -> Repository:
        """
        Return the repository document, refreshing it when stale.

        Returns
        -------
        Repository
            Cached or freshly fetched document

        Raises
        ------
        UpstreamError
            If the refresh fails; the message wraps the underlying cause

        """
        slot = self._slot
        if slot is not None and not slot.is_expired(self._clock()):
            return slot.value

        return await self._flight.do("repository", self._refresh)

    async def get_templates(self) -> list[TemplatesRepository]:
        """Templates section of the repository document."""
        repository = await self.get_repository()
        return repository.templates

    def invalidate(self) -> None:
        """Drop the cached document."""
        self._slot = None

    async def _refresh(self) -> Repository:
        try:
            data = await self.fetcher.get_json(self.url, timeout=self.timeout, description="repository")
            repository = Repository.model_validate(data)
        except ValidationError as e:
            logger.error("Repository document failed validation: %s", e)
            msg = f"Failed to fetch repository data: invalid repository document ({e.error_count()} errors)"
            raise UpstreamError(msg) from e
        except UpstreamError as e:
            logger.error("Error fetching repository: %s", e)
            msg = f"Failed to fetch repository data: {e.message}"
            raise type(e)(msg, status_code=e.status_code, hint=e.hint) from e

        # Whole-document replace; there is no merge with the previous slot.
        self._slot = CacheEntry(repository, self.ttl, self._clock())
        logger.info(
            "Repository refreshed (version=%s, endpoints=%d, template sources=%d)",
            repository.version,
            len(repository.mini_app_endpoints),
            len(repository.templates),
        )
        return repository
