"""Static data tables and their loader."""

from mcp_blockchain_metadata.data.loader import (
    get_chain_aliases,
    get_common_template_protocols,
    get_explorer_url,
    get_miniapp_categories,
    get_miniapp_states,
    get_template_categories,
    get_token_list_urls,
    load_sources,
)

__all__ = [
    "get_chain_aliases",
    "get_common_template_protocols",
    "get_explorer_url",
    "get_miniapp_categories",
    "get_miniapp_states",
    "get_template_categories",
    "get_token_list_urls",
    "load_sources",
]
