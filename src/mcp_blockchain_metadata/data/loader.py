"""Static upstream table loader."""

from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml


@lru_cache(maxsize=1)
def load_sources() -> dict[str, Any]:
    """
    Load the static upstream tables from sources.yaml.

    Returns
    -------
    dict[str, Any]
        Token-list URLs, chain aliases, explorers and catalog constants

    """
    path = Path(__file__).parent / "sources.yaml"
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f)


def get_token_list_urls() -> dict[str, str]:
    """
    Get the protocol to token-list URL table.

    Returns
    -------
    dict[str, str]
        Mapping of lowercase protocol names to token-list URLs

    """
    sources = load_sources()
    return {name.lower(): url for name, url in sources["token_lists"].items()}


def get_chain_aliases() -> dict[str, str]:
    """
    Get the chain alias table.

    Returns
    -------
    dict[str, str]
        Mapping of lowercase chain aliases to decimal chain id strings

    """
    sources = load_sources()
    return {alias.lower(): str(chain_id) for alias, chain_id in sources["chain_aliases"].items()}


def get_explorer_url(chain_id: str, address: str) -> str | None:
    """
    Build a block explorer URL for an address.

    Parameters
    ----------
    chain_id : str
        Decimal chain id
    address : str
        Contract address

    Returns
    -------
    str | None
        Explorer URL, or None if the chain has no known explorer

    """
    base = load_sources().get("explorers", {}).get(str(chain_id))
    if base is None:
        return None
    return f"{base}{address}"


def get_miniapp_categories() -> list[str]:
    """Known mini-app categories."""
    return list(load_sources()["miniapps"]["categories"])


def get_miniapp_states() -> list[str]:
    """Known mini-app verification states."""
    return list(load_sources()["miniapps"]["states"])


def get_template_categories() -> list[str]:
    """Known template categories."""
    return list(load_sources()["templates"]["categories"])


def get_common_template_protocols() -> list[str]:
    """Protocols suggested in template help and error hints."""
    return list(load_sources()["templates"]["common_protocols"])
