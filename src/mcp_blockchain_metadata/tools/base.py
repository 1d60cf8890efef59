"""Base tool class with argument validation and error translation."""

import json
import logging
from abc import ABC, abstractmethod
from datetime import UTC, datetime
from typing import Any, ClassVar

from pydantic import BaseModel, ValidationError

from mcp_blockchain_metadata.core.errors import GatewayError, InvalidArgumentError
from mcp_blockchain_metadata.core.models import ToolResult
from mcp_blockchain_metadata.sources.fetcher import RemoteFetcher
from mcp_blockchain_metadata.sources.repository import RepositoryCache
from mcp_blockchain_metadata.sources.tokens import TokenListCache

logger = logging.getLogger(__name__)

DATA_FRESHNESS_NOTE = "Data may be up to 5 minutes old"


class ToolContext:
    """
    Shared collaborators handed to every tool instance.

    Parameters
    ----------
    repository : RepositoryCache
        Repository document cache
    tokens : TokenListCache
        Token-list cache
    fetcher : RemoteFetcher
        HTTP fetcher for per-template metadata
    template_timeout : float
        Timeout in seconds for each template metadata fetch
    template_fallback_url : str | None
        Document fetched instead of a template endpoint that returns 404

    """

    def __init__(
        self,
        repository: RepositoryCache,
        tokens: TokenListCache,
        fetcher: RemoteFetcher,
        template_timeout: float = 8.0,
        template_fallback_url: str | None = None,
    ) -> None:
        self.repository = repository
        self.tokens = tokens
        self.fetcher = fetcher
        self.template_timeout = template_timeout
        self.template_fallback_url = template_fallback_url


class BaseTool(ABC):
    """
    Abstract base class for query tools.

    Subclasses set ``name``, ``description`` and ``input_model`` and
    implement ``run``. ``call`` validates raw arguments and converts every
    failure into an error result, so nothing raises past the tool boundary.

    Attributes
    ----------
    name : str
        Tool name published in ``tools/list`` (must be set in subclass)
    description : str
        Tool description
    input_model : type[BaseModel]
        Pydantic model validating the call arguments
    error_hint : str
        Remediation hint appended to errors that carry none

    """

    name: ClassVar[str] = ""
    description: ClassVar[str] = ""
    input_model: ClassVar[type[BaseModel]]
    error_hint: ClassVar[str] = ""

    def __init__(self, context: ToolContext) -> None:
        if not self.name:
            msg = f"{self.__class__.__name__} must define 'name' attribute"
            raise ValueError(msg)
        self.context = context

    def descriptor(self) -> dict[str, Any]:
        """
        Describe the tool for a ``tools/list`` response.

        Returns
        -------
        dict[str, Any]
            Name, description and JSON schema of the arguments

        """
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_model.model_json_schema(by_alias=True),
        }

    async def call(self, arguments: dict[str, Any] | None) -> ToolResult:
        """
        Validate arguments and run the tool.

        Parameters
        ----------
        arguments : dict[str, Any] | None
            Raw call arguments

        Returns
        -------
        ToolResult
            Tool output, or an error result with ``isError`` set

        """
        try:
            params = self.input_model.model_validate(arguments or {})
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(part) for part in err['loc']) or 'arguments'}: {err['msg']}" for err in e.errors()
            )
            return self.error_result(InvalidArgumentError(f"Invalid arguments for {self.name}: {problems}"))

        try:
            return await self.run(params)
        except GatewayError as e:
            logger.warning("Tool %s failed: %s", self.name, e.message)
            return self.error_result(e)
        except Exception:
            logger.exception("Unexpected error in tool %s", self.name)
            return self.error_result(GatewayError(f"Internal error while running {self.name}"))

    @abstractmethod
    async def run(self, params: Any) -> ToolResult:
        """
        Execute the tool with validated arguments.

        Must be implemented by subclasses.

        """
        ...

    def error_result(self, error: GatewayError) -> ToolResult:
        """
        Render a gateway error as a tool error result.

        Parameters
        ----------
        error : GatewayError
            Error to report

        Returns
        -------
        ToolResult
            Result with ``isError`` set and the error under ``structuredContent.error``

        """
        # The error may be shared with other waiters of the same fetch; leave it untouched.
        hint = error.hint or self.remediation_hint()
        data = error.to_error_data()
        if hint:
            data["hint"] = hint
        text = error.message if not hint else f"{error.message}. {hint}"
        return ToolResult.text(text, structured={"error": data}, is_error=True)

    def remediation_hint(self) -> str | None:
        """Hint attached to errors raised without one."""
        return self.error_hint or None

    @staticmethod
    def json_result(payload: dict[str, Any]) -> ToolResult:
        """Result whose text is the pretty-printed payload."""
        return ToolResult.text(json.dumps(payload, indent=2), structured=payload)

    @staticmethod
    def timestamp() -> str:
        """Current UTC time in ISO 8601."""
        return datetime.now(UTC).isoformat()
