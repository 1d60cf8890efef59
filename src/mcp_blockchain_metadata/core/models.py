"""Data models for tokens, the metadata repository, and tool results."""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

NATIVE_TOKEN_ADDRESS = "0x0000000000000000000000000000000000000000"


class VerificationState(StrEnum):
    """Verification state of a domain or mini-app endpoint."""

    TRUSTED = "trusted"
    PENDING = "pending"
    REJECTED = "rejected"


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class TokenPrice(_CamelModel):
    """USD price snapshot attached to a token."""

    usd: float
    last_updated: str = Field(alias="lastUpdated")


class TokenInfo(_CamelModel):
    """
    Canonical token record served by the token-list cache.

    Attributes
    ----------
    name : str
        Token name
    symbol : str
        Token symbol (e.g., 'WAVAX', 'USDC')
    address : str
        Token contract address
    decimals : int
        Number of decimal places
    chain_id : str
        Decimal chain id, always stored as a string
    logo_uri : str | None
        Logo URL
    tags : list
        Token-list tags
    is_native : bool
        True iff the address is the all-zero address
    price : TokenPrice | None
        Optional USD price

    """

    name: str
    symbol: str
    address: str
    decimals: int
    chain_id: str = Field(alias="chainId")
    logo_uri: str | None = Field(default=None, alias="logoURI")
    tags: list[Any] = Field(default_factory=list)
    is_native: bool = Field(default=False, alias="isNative")
    price: TokenPrice | None = None

    @model_validator(mode="after")
    def _derive_native(self) -> "TokenInfo":
        self.is_native = self.address.lower() == NATIVE_TOKEN_ADDRESS
        return self


class MiniAppEndpoint(_CamelModel):
    """
    Mini-app endpoint listed in the repository.

    Attributes
    ----------
    host : str
        Host serving the mini-app
    state : VerificationState
        Verification state
    category : str
        Mini-app category (e.g., 'defi')
    subcategory : str | None
        Optional subcategory
    verified_at : str
        Verification timestamp
    protocol : str
        URL scheme (e.g., 'https')
    endpoint : str
        Path of the endpoint on the host

    """

    host: str
    state: VerificationState
    category: str
    subcategory: str | None = None
    verified_at: str = Field(default="", alias="verifiedAt")
    protocol: str
    endpoint: str


class Template(_CamelModel):
    """Mini-app template entry."""

    id: str
    name: str
    protocol: str
    endpoint: str


class TemplateCategory(_CamelModel):
    """Group of related templates."""

    id: str
    name: str
    templates: list[Template] = Field(default_factory=list)


class TemplatesRepository(_CamelModel):
    """Templates served from a common base URL."""

    base_url: str = Field(alias="baseUrl")
    categories: list[TemplateCategory] = Field(default_factory=list)


class Repository(_CamelModel):
    """
    Metadata repository document.

    The whole document is fetched and cached as one unit. Only the sections
    the tools read are validated; the domain lists are kept as received.

    """

    last_updated: str = Field(default="", alias="lastUpdated")
    version: str = ""
    integrator_domains: list[Any] = Field(default_factory=list, alias="integratorDomains")
    mini_app_endpoints: list[MiniAppEndpoint] = Field(default_factory=list, alias="miniAppEndpoints")
    templates: list[TemplatesRepository] = Field(default_factory=list)
    malicious_domains: list[Any] = Field(default_factory=list, alias="maliciousDomains")


class TextContent(BaseModel):
    """Text content block of a tool result."""

    type: str = "text"
    text: str


class ToolResult(_CamelModel):
    """
    Result of a tool call as returned in a ``tools/call`` response.

    Attributes
    ----------
    content : list[TextContent]
        Human-readable content blocks
    structured_content : dict | None
        Machine-readable payload
    is_error : bool
        True when the tool reports a failure

    """

    content: list[TextContent] = Field(default_factory=list)
    structured_content: dict[str, Any] | None = Field(default=None, alias="structuredContent")
    is_error: bool = Field(default=False, alias="isError")

    @classmethod
    def text(cls, text: str, *, structured: dict[str, Any] | None = None, is_error: bool = False) -> "ToolResult":
        """Build a result with a single text block."""
        return cls(content=[TextContent(text=text)], structured_content=structured, is_error=is_error)

    def to_response(self) -> dict[str, Any]:
        """Serialize with protocol field names, omitting empty structured content."""
        data = self.model_dump(by_alias=True)
        if data["structuredContent"] is None:
            del data["structuredContent"]
        return data
