"""Remote metadata sources: fetcher, caches and chain normalization."""

from mcp_blockchain_metadata.sources.cache import CacheEntry, SingleFlight, TTLCache
from mcp_blockchain_metadata.sources.chains import known_chains, normalize_chain_id
from mcp_blockchain_metadata.sources.fetcher import RemoteFetcher
from mcp_blockchain_metadata.sources.repository import RepositoryCache
from mcp_blockchain_metadata.sources.tokens import TokenListCache

__all__ = [
    "CacheEntry",
    "RemoteFetcher",
    "RepositoryCache",
    "SingleFlight",
    "TTLCache",
    "TokenListCache",
    "known_chains",
    "normalize_chain_id",
]
