"""Template metadata query tool with per-template fan-out."""

import asyncio
import logging
from typing import Any, Literal, NamedTuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from mcp_blockchain_metadata.core.errors import UpstreamError, UpstreamTimeoutError
from mcp_blockchain_metadata.core.models import Template, TemplatesRepository, ToolResult
from mcp_blockchain_metadata.data import get_common_template_protocols, get_template_categories
from mcp_blockchain_metadata.tools.base import DATA_FRESHNESS_NOTE, BaseTool
from mcp_blockchain_metadata.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

SUMMARY_KEYS = ("name", "description", "version", "author", "type", "category")

ALL_NOT_FOUND_MESSAGE = (
    "All requested resources returned 404 Not Found. The API may have changed "
    "or the templates may be temporarily unavailable."
)


class TemplateMetadataInput(BaseModel):
    """Arguments of ``get_metadata_of_template``."""

    model_config = ConfigDict(populate_by_name=True)

    category: Literal["swap", "staking", "lending"] | None = Field(default=None, description="Template category")
    protocol: str | None = Field(
        default=None, min_length=1, description='Protocol to filter templates by. Example: "traderjoe", "aave"'
    )
    query: str | None = Field(default=None, description="Text searched in template names and ids")
    format_: Literal["full", "summary"] = Field(
        default="full",
        alias="format",
        description='"full" returns the whole document, "summary" only basic fields',
    )

    @field_validator("category", mode="before")
    @classmethod
    def _lowercase(cls, value: Any) -> Any:
        return value.lower() if isinstance(value, str) else value


class TemplateMatch(NamedTuple):
    """A template selected by the filters, with where it lives."""

    template: Template
    base_url: str
    category_id: str

    @property
    def url(self) -> str:
        return f"{self.base_url}{self.template.endpoint}"

    def describe(self) -> dict[str, Any]:
        return {
            "templateId": self.template.id,
            "templateName": self.template.name,
            "category": self.category_id,
            "protocol": self.template.protocol,
        }


def filter_templates(
    repositories: list[TemplatesRepository],
    category: str | None = None,
    protocol: str | None = None,
    query: str | None = None,
) -> list[TemplateMatch]:
    """
    Select templates by category id, protocol substring and text query.

    Parameters
    ----------
    repositories : list[TemplatesRepository]
        Templates section of the repository document
    category : str | None
        Exact category id (case-insensitive)
    protocol : str | None
        Substring of the template protocol (case-insensitive)
    query : str | None
        Substring of the template name or id (case-insensitive)

    Returns
    -------
    list[TemplateMatch]
        Matches in document order

    """
    category = category.lower() if category else None
    protocol = protocol.lower() if protocol else None
    query = query.lower() if query else None

    matches = []
    for repo in repositories:
        for cat in repo.categories:
            if category and cat.id.lower() != category:
                continue
            for template in cat.templates:
                if protocol and protocol not in template.protocol.lower():
                    continue
                if query and query not in template.name.lower() and query not in template.id.lower():
                    continue
                matches.append(TemplateMatch(template, repo.base_url, cat.id))

    logger.debug("Matched %d templates (category=%s, protocol=%s, query=%s)", len(matches), category, protocol, query)
    return matches


def simplify_metadata(metadata: Any) -> Any:
    """
    Reduce a template document to its summary fields.

    Keeps the basic descriptive keys and replaces every list field with a
    ``<key>Count`` entry. Non-mapping documents are returned unchanged.

    Examples
    --------
    >>> simplify_metadata({"name": "Swap", "actions": [1, 2], "extra": {}})
    {'name': 'Swap', 'actionsCount': 2}

    """
    if not isinstance(metadata, dict):
        return metadata

    summary = {key: metadata[key] for key in SUMMARY_KEYS if key in metadata}
    for key, value in metadata.items():
        if isinstance(value, list):
            summary[f"{key}Count"] = len(value)
    return summary


@ToolRegistry.register
class TemplateMetadataTool(BaseTool):
    """
    Fetch template documents for the templates matching the filters.

    One fetch per match runs concurrently with its own timeout. A template
    endpoint answering 404 is retried once against the fallback document.
    A failed fetch is reported in ``failedTemplates`` and never fails the
    whole call.

    """

    name = "get_metadata_of_template"
    description = (
        "Get the official JSON structure of mini-app templates for blockchain use cases: swap, "
        "staking and lending templates for protocols such as traderjoe, uniswap, pancakeswap, aave, "
        "compound and curve. Returns verified templates in full or summary format; it never "
        "generates new code."
    )
    input_model = TemplateMetadataInput

    def remediation_hint(self) -> str:
        return (
            f"Available categories: {', '.join(get_template_categories())}. "
            f"Example protocols: {', '.join(get_common_template_protocols()[:3])}"
        )

    async def run(self, params: TemplateMetadataInput) -> ToolResult:
        if not params.category and not params.protocol:
            return ToolResult.text(self.help_text())

        repositories = await self.context.repository.get_templates()
        matches = filter_templates(repositories, params.category, params.protocol, params.query)
        if not matches:
            return ToolResult.text(self._empty_message(params), structured={"templates": [], "failedTemplates": []})

        outcomes = await asyncio.gather(
            *(self._fetch_one(match, params.format_) for match in matches), return_exceptions=True
        )

        templates: list[dict[str, Any]] = []
        failed: list[dict[str, Any]] = []
        used_fallback = False
        for match, outcome in zip(matches, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                logger.error("Unexpected error fetching template %s", match.template.id, exc_info=outcome)
                failed.append({**match.describe(), "error": {"code": 500, "message": str(outcome)}})
            elif "error" in outcome:
                failed.append(outcome)
            else:
                used_fallback = used_fallback or outcome.pop("usedFallback", False)
                templates.append(outcome)

        logger.info(
            "Fetched %d of %d templates (%d failed, fallback used: %s)",
            len(templates),
            len(matches),
            len(failed),
            used_fallback,
        )

        if not templates:
            not_found = sum(1 for item in failed if item["error"]["code"] == 404)
            if not_found == len(matches):
                text = ALL_NOT_FOUND_MESSAGE
            else:
                text = (
                    "Could not get metadata for any of the matching templates. "
                    "Try other filters or check the connection."
                )
            return ToolResult.text(text, structured={"templates": [], "failedTemplates": failed})

        metadata: dict[str, Any] = {
            "category": params.category,
            "protocol": params.protocol,
            "query": params.query,
            "format": params.format_,
            "totalTemplates": len(matches),
            "fetchedTemplates": len(templates),
            "failedTemplates": len(failed),
            "timestamp": self.timestamp(),
            "availableCategories": get_template_categories(),
            "commonProtocols": get_common_template_protocols(),
            "dataFreshness": DATA_FRESHNESS_NOTE,
        }
        if used_fallback:
            metadata["note"] = "Some data came from a fallback endpoint because the original was not available."

        return self.json_result({"metadata": metadata, "templates": templates, "failedTemplates": failed})

    async def _fetch_one(self, match: TemplateMatch, format_: str) -> dict[str, Any]:
        timeout = self.context.template_timeout
        used_fallback = False
        try:
            try:
                document = await self.context.fetcher.get_json(
                    match.url, timeout=timeout, description=f"template {match.template.id}"
                )
            except UpstreamError as e:
                fallback_url = self.context.template_fallback_url
                if e.status_code != 404 or not fallback_url:
                    raise
                logger.warning("Template %s returned 404, using fallback %s", match.template.id, fallback_url)
                try:
                    document = await self.context.fetcher.get_json(
                        fallback_url, timeout=timeout, description="fallback template"
                    )
                except UpstreamError as fallback_error:
                    logger.warning("Fallback template fetch failed: %s", fallback_error.message)
                    raise e from fallback_error
                used_fallback = True
            if document is None:
                msg = f"Template {match.template.id} returned no metadata"
                raise UpstreamError(msg)
        except UpstreamError as e:
            logger.warning("Error fetching template %s from %s: %s", match.template.id, match.url, e.message)
            return {**match.describe(), "error": self._failure(e)}

        metadata = simplify_metadata(document) if format_ == "summary" else document
        result = {**match.describe(), "metadata": metadata}
        if used_fallback:
            result["usedFallback"] = True
        return result

    @staticmethod
    def _failure(error: UpstreamError) -> dict[str, Any]:
        if isinstance(error, UpstreamTimeoutError):
            code = 408
        else:
            code = error.status_code if error.status_code is not None else 500
        return {"code": code, "kind": error.kind, "message": error.message}

    @staticmethod
    def _empty_message(params: TemplateMetadataInput) -> str:
        filters = []
        if params.category:
            filters.append(f'category: "{params.category}"')
        if params.protocol:
            filters.append(f'protocol: "{params.protocol}"')
        if params.query:
            filters.append(f'query: "{params.query}"')

        message = "No templates found"
        if filters:
            message += f" with filters {', '.join(filters)}"
        return (
            f"{message}. Available categories: {', '.join(get_template_categories())}. "
            "Try other filters or more general values."
        )

    @staticmethod
    def help_text() -> str:
        """Usage guide returned when neither category nor protocol is given."""
        protocols = "\n".join(
            f"- **{protocol}**: official template for {protocol.capitalize()}"
            for protocol in get_common_template_protocols()
        )
        return f"""
# Blockchain template catalog

Verified, ready-to-use JSON structures for DeFi mini-apps.

## Categories (required)
- **swap**: token exchange (DEX) interfaces and components
- **staking**: deposit-and-reward systems
- **lending**: lending and interest-bearing deposit platforms

## Supported protocols (recommended)
{protocols}
- Other DeFi protocols are available too

## Examples
- Official TraderJoe swap template: category="swap", protocol="traderjoe"
- Aave staking implementation: category="staking", protocol="aave"
- Every lending option: category="lending"

## Response format
- **full**: complete JSON structure (default)
- **summary**: basic information only
"""
