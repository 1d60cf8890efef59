"""Chain selector normalization."""

from collections.abc import Mapping

from mcp_blockchain_metadata.core.errors import UnknownChainError


def normalize_chain_id(selector: str | int, aliases: Mapping[str, str]) -> str:
    """
    Normalize a chain selector to a decimal chain id string.

    Parameters
    ----------
    selector : str | int
        Numeric chain id or chain alias (e.g., '43114', 'avalanche', 'AVAX')
    aliases : Mapping[str, str]
        Lowercase alias to chain id table

    Returns
    -------
    str
        Decimal chain id

    Raises
    ------
    UnknownChainError
        If the selector is neither numeric nor a known alias

    Examples
    --------
    >>> normalize_chain_id("AVAX", {"avax": "43114"})
    '43114'
    >>> normalize_chain_id(1, {})
    '1'

    """
    if isinstance(selector, bool):
        msg = f"Unknown chain: {selector}"
        raise UnknownChainError(msg)
    if isinstance(selector, int):
        if selector < 0:
            msg = f"Unknown chain: {selector}"
            raise UnknownChainError(msg)
        return str(selector)

    text = selector.strip()
    if text.isascii() and text.isdigit():
        return text

    chain_id = aliases.get(text.lower())
    if chain_id is None:
        msg = f"Unknown chain: {selector}"
        hint = f"Use a numeric chain id or one of: {', '.join(sorted(aliases))}"
        raise UnknownChainError(msg, hint=hint)
    return chain_id


def known_chains(aliases: Mapping[str, str]) -> dict[str, list[str]]:
    """
    Group aliases by chain id.

    Parameters
    ----------
    aliases : Mapping[str, str]
        Lowercase alias to chain id table

    Returns
    -------
    dict[str, list[str]]
        Chain id to sorted aliases, ordered by numeric chain id

    """
    grouped: dict[str, list[str]] = {}
    for alias, chain_id in aliases.items():
        grouped.setdefault(chain_id, []).append(alias)
    return {chain_id: sorted(grouped[chain_id]) for chain_id in sorted(grouped, key=int)}
