"""Per-protocol token-list cache with chain filtering."""

import logging
import time
from collections.abc import Callable, Mapping
from typing import Any

from pydantic import ValidationError

from mcp_blockchain_metadata.core.errors import (
    InvalidTokenListError,
    ProtocolRequiredError,
    UnsupportedProtocolError,
    UpstreamError,
    UpstreamTimeoutError,
)
from mcp_blockchain_metadata.core.models import TokenInfo, TokenPrice
from mcp_blockchain_metadata.data import get_chain_aliases, get_token_list_urls
from mcp_blockchain_metadata.sources.cache import SingleFlight, TTLCache
from mcp_blockchain_metadata.sources.chains import normalize_chain_id
from mcp_blockchain_metadata.sources.fetcher import RemoteFetcher

logger = logging.getLogger(__name__)

TOKEN_LIST_CACHE_TTL = 30 * 60


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def _non_empty_str(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


class TokenListCache:
    """
    Resolves (protocol, chain) pairs to validated token lists.

    Lists are filtered by chain before they are cached, so each requested
    chain has its own cache entry holding exactly the tokens served for it.

    Parameters
    ----------
    fetcher : RemoteFetcher
        HTTP fetcher
    urls : Mapping[str, str] | None
        Protocol to token-list URL table. Loaded from sources.yaml if None.
    aliases : Mapping[str, str] | None
        Chain alias table. Loaded from sources.yaml if None.
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
        urls: Mapping[str, str] | None = None,
        aliases: Mapping[str, str] | None = None,
        ttl: float = TOKEN_LIST_CACHE_TTL,
        timeout: float = 10.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.fetcher = fetcher
        self.urls = {name.lower(): url for name, url in (urls if urls is not None else get_token_list_urls()).items()}
        self.aliases = dict(aliases) if aliases is not None else get_chain_aliases()
        self.timeout = timeout
        self._cache: TTLCache[list[TokenInfo]] = TTLCache(default_ttl=ttl, clock=clock)
        self._flight = SingleFlight()

    @staticmethod
    def cache_key(protocol: str, chain_id: str | None = None) -> str:
        """
        Build the cache key for a protocol and optional normalized chain id.

        Examples
        --------
        >>> TokenListCache.cache_key("LFJ", "43114")
        'lfj-43114'
        >>> TokenListCache.cache_key("lfj")
        'lfj'

        """
        protocol = protocol.lower()
        return f"{protocol}-{chain_id}" if chain_id else protocol

    def supported_protocols(self) -> list[str]:
        """Protocols with a known token-list URL."""
        return sorted(self.urls)

    def clear(self) -> None:
        """Drop all cached token lists."""
        self._cache.clear()

    async def get_tokens_by_protocol(self, protocol_name: str, chain: str | int | None = None) -> list[TokenInfo]:
        """
        Get the tokens of a protocol, optionally restricted to one chain.

        Parameters
        ----------
        protocol_name : str
            Protocol name (e.g., 'lfj', 'uniswap'); case-insensitive
        chain : str | int | None
            Numeric chain id or chain alias

        Returns
        -------
        list[TokenInfo]
            Validated tokens, filtered to the chain when one is given

        Raises
        ------
        ProtocolRequiredError
            If the protocol name is empty
        UnknownChainError
            If the chain alias is not recognized
        UnsupportedProtocolError
            If no token list is known for the protocol
        UpstreamTimeoutError
            If the token list fetch times out
        UpstreamError
            If the token list cannot be fetched or is invalid or empty

        """
        if not protocol_name or not protocol_name.strip():
            msg = "Protocol name is required"
            raise ProtocolRequiredError(msg, hint=self._protocols_hint())

        protocol = protocol_name.strip().lower()
        chain_id = None
        if chain is not None and chain != "":
            chain_id = normalize_chain_id(chain, self.aliases)

        key = self.cache_key(protocol, chain_id)
        cached = self._cache.get(key)
        if cached is not None:
            logger.debug("Token list cache hit: %s", key)
            return list(cached)

        url = self.urls.get(protocol)
        if url is None:
            msg = f"Unsupported protocol for token lists: {protocol_name}"
            raise UnsupportedProtocolError(msg, hint=self._protocols_hint())

        tokens = await self._flight.do(key, lambda: self._fetch_and_store(protocol_name, url, key, chain_id))
        return list(tokens)

    async def _fetch_and_store(self, protocol_name: str, url: str, key: str, chain_id: str | None) -> list[TokenInfo]:
        chain_suffix = f" (chain: {chain_id})" if chain_id else ""
        try:
            data = await self.fetcher.get_json(url, timeout=self.timeout, description=f"{protocol_name} token list")
        except UpstreamTimeoutError as e:
            msg = f"Timeout fetching tokens for protocol {protocol_name}{chain_suffix}"
            raise UpstreamTimeoutError(msg, hint=e.hint) from e
        except UpstreamError as e:
            msg = f"Error fetching tokens for protocol {protocol_name}{chain_suffix}: {e.message}"
            raise UpstreamError(msg, status_code=e.status_code) from e

        entries = self._extract_entries(data)
        if not entries:
            msg = f"Error fetching tokens for protocol {protocol_name}{chain_suffix}: invalid or empty token list"
            raise InvalidTokenListError(msg)

        tokens = [token for token in map(self.normalize_token, entries) if token is not None]
        dropped = len(entries) - len(tokens)
        if dropped:
            logger.debug("Dropped %d malformed entries from %s token list", dropped, protocol_name)

        if chain_id:
            tokens = [token for token in tokens if token.chain_id == chain_id]

        evicted = self._cache.cleanup_expired()
        if evicted:
            logger.debug("Evicted %d expired token lists", evicted)
        self._cache.set(key, tokens)
        logger.info("Cached %d tokens for %s", len(tokens), key)
        return tokens

    @staticmethod
    def _extract_entries(data: Any) -> list[Any]:
        if isinstance(data, Mapping):
            data = data.get("tokens")
        return data if isinstance(data, list) else []

    @staticmethod
    def normalize_token(entry: Any) -> TokenInfo | None:
        """
        Validate a raw token-list entry and convert it to a TokenInfo.

        Parameters
        ----------
        entry : Any
            Raw entry from a token-list document

        Returns
        -------
        TokenInfo | None
            Canonical token, or None if a required field is missing or
            ``decimals``/``chainId`` are not JSON numbers
            (numeric strings such as "18" are rejected)

        """
        if not isinstance(entry, Mapping):
            return None

        address = _non_empty_str(entry.get("address"))
        symbol = _non_empty_str(entry.get("symbol"))
        name = _non_empty_str(entry.get("name"))
        decimals = _as_int(entry.get("decimals"))
        chain_id = _as_int(entry.get("chainId"))
        if address is None or symbol is None or name is None or decimals is None or chain_id is None:
            return None

        price = None
        if isinstance(entry.get("price"), Mapping):
            try:
                price = TokenPrice.model_validate(entry["price"])
            except ValidationError:
                price = None

        tags = entry.get("tags")
        return TokenInfo(
            name=name,
            symbol=symbol,
            address=address,
            decimals=decimals,
            chain_id=str(chain_id),
            logo_uri=_non_empty_str(entry.get("logoURI")),
            tags=list(tags) if isinstance(tags, list) else [],
            price=price,
        )

    def _protocols_hint(self) -> str:
        return f"Supported protocols: {', '.join(self.supported_protocols())}"
