"""Token-list query tool."""

import logging
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from mcp_blockchain_metadata.core.models import TokenInfo, ToolResult
from mcp_blockchain_metadata.data import get_explorer_url
from mcp_blockchain_metadata.tools.base import BaseTool
from mcp_blockchain_metadata.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


class ProtocolTokensInput(BaseModel):
    """Arguments of ``get_protocol_tokens``."""

    model_config = ConfigDict(populate_by_name=True)

    protocol: str = Field(min_length=1, description='Protocol whose token list to return. Example: "lfj", "uniswap"')
    chain_id: str | int | None = Field(
        default=None,
        alias="chainId",
        description='Numeric chain id or chain alias. Example: 43114, "avalanche"',
    )
    query: str | None = Field(default=None, description="Substring matched against name, symbol and address")
    sort: Literal["name", "symbol", "none"] = Field(default="none", description="Sort field")
    order: Literal["asc", "desc"] = Field(default="asc", description="Sort order")
    offset: int = Field(default=0, ge=0, description="Number of tokens to skip")
    limit: int | None = Field(default=None, ge=1, le=1000, description="Maximum number of tokens to return (1-1000)")

    @field_validator("sort", "order", mode="before")
    @classmethod
    def _lowercase(cls, value: Any) -> Any:
        return value.lower() if isinstance(value, str) else value


@ToolRegistry.register
class ProtocolTokensTool(BaseTool):
    """
    Serve the token list of a protocol, optionally restricted to one chain.

    Tokens come from the token-list cache and are then filtered by ``query``,
    sorted and paginated. Sorting happens before truncation, so ``limit``
    always keeps the first tokens of the sorted list.

    """

    name = "get_protocol_tokens"
    description = (
        "Get the tokens listed by a DeFi protocol's token list (e.g. lfj, traderjoe, pangolin, uniswap), "
        "optionally filtered by chain id or chain alias. Supports text search, sorting by name or symbol "
        "and pagination. Each token includes address, decimals, logo and an explorer link."
    )
    input_model = ProtocolTokensInput

    def remediation_hint(self) -> str:
        return f"Supported protocols: {', '.join(self.context.tokens.supported_protocols())}"

    async def run(self, params: ProtocolTokensInput) -> ToolResult:
        tokens = await self.context.tokens.get_tokens_by_protocol(params.protocol, params.chain_id)
        chain_label = str(params.chain_id) if params.chain_id not in (None, "") else None

        if params.query:
            needle = params.query.lower()
            tokens = [
                token
                for token in tokens
                if needle in token.name.lower() or needle in token.symbol.lower() or needle in token.address.lower()
            ]

        if params.sort != "none":
            field = params.sort
            tokens = sorted(tokens, key=lambda token: getattr(token, field).lower(), reverse=params.order == "desc")

        total = len(tokens)
        end = params.offset + params.limit if params.limit is not None else None
        page = tokens[params.offset : end]
        logger.debug("Serving %d of %d tokens for %s", len(page), total, params.protocol)

        if not page:
            suffix = f" on chain {chain_label}" if chain_label else ""
            return ToolResult.text(
                f"No tokens found for protocol {params.protocol}{suffix}",
                structured={"metadata": self._metadata(params, chain_label, total, 0), "tokens": []},
            )

        response = {
            "metadata": self._metadata(params, chain_label, total, len(page)),
            "tokens": [self.format_token(token) for token in page],
        }
        return self.json_result(response)

    def _metadata(self, params: ProtocolTokensInput, chain_label: str | None, total: int, count: int) -> dict[str, Any]:
        return {
            "protocol": params.protocol,
            "chainId": chain_label or "all",
            "total": total,
            "count": count,
            "offset": params.offset,
            "timestamp": self.timestamp(),
        }

    @staticmethod
    def format_token(token: TokenInfo) -> dict[str, Any]:
        """
        Serialize a token with display fields added.

        Parameters
        ----------
        token : TokenInfo
            Token to format

        Returns
        -------
        dict[str, Any]
            Token fields plus ``formattedSymbol``, ``formattedDecimals`` and
            ``explorerUrl`` (None for native tokens and chains without an explorer)

        """
        data = token.model_dump(by_alias=True)
        data["formattedSymbol"] = token.symbol.upper()
        data["formattedDecimals"] = f"{token.decimals} decimals"
        data["explorerUrl"] = None if token.is_native else get_explorer_url(token.chain_id, token.address)
        return data
