"""Mini-app endpoint query tool."""

from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

from mcp_blockchain_metadata.core.models import MiniAppEndpoint, ToolResult, VerificationState
from mcp_blockchain_metadata.data import get_miniapp_categories, get_miniapp_states
from mcp_blockchain_metadata.tools.base import DATA_FRESHNESS_NOTE, BaseTool
from mcp_blockchain_metadata.tools.registry import ToolRegistry

VERIFICATION_LABELS = {
    VerificationState.TRUSTED: "Verified",
    VerificationState.PENDING: "Pending verification",
    VerificationState.REJECTED: "Rejected",
}


class MiniAppEndpointsInput(BaseModel):
    """Arguments of ``get_miniapp_endpoints``."""

    category: Literal["all", "defi", "gaming", "nft", "social"] = Field(
        default="all", description="Mini-app category"
    )
    state: Literal["all", "trusted", "pending", "rejected"] = Field(
        default="all", description="Verification state of the endpoints"
    )
    query: str | None = Field(default=None, description='Text searched in host, endpoint and category. Example: "swap"')
    protocol: str | None = Field(default=None, description='URL scheme to filter by. Example: "https"')
    limit: int = Field(default=50, ge=1, le=100, description="Maximum number of endpoints to return (1-100)")

    @field_validator("category", "state", mode="before")
    @classmethod
    def _lowercase(cls, value: Any) -> Any:
        return value.lower() if isinstance(value, str) else value


def filter_endpoints(endpoints: list[MiniAppEndpoint], params: MiniAppEndpointsInput) -> list[MiniAppEndpoint]:
    """Apply the category, state, protocol and text filters in that order."""
    results = list(endpoints)

    if params.category != "all":
        results = [e for e in results if e.category.lower() == params.category]

    if params.state != "all":
        results = [e for e in results if e.state == params.state]

    if params.protocol:
        protocol = params.protocol.lower()
        results = [e for e in results if e.protocol.lower() == protocol]

    if params.query:
        needle = params.query.lower()
        results = [
            e
            for e in results
            if needle in e.host.lower()
            or needle in e.endpoint.lower()
            or needle in e.category.lower()
            or (e.subcategory is not None and needle in e.subcategory.lower())
        ]

    return results


@ToolRegistry.register
class MiniAppEndpointsTool(BaseTool):
    """List mini-app endpoints from the repository document."""

    name = "get_miniapp_endpoints"
    description = (
        "List registered mini-app endpoints, filtered by category (defi, gaming, nft, social), "
        "verification state (trusted, pending, rejected), URL scheme and free-text search."
    )
    input_model = MiniAppEndpointsInput
    error_hint = "Check the parameters and try again, or use category \"all\" to list every endpoint"

    async def run(self, params: MiniAppEndpointsInput) -> ToolResult:
        repository = await self.context.repository.get_repository()
        matches = filter_endpoints(repository.mini_app_endpoints, params)

        if not matches:
            return ToolResult.text(self._empty_message(params), structured={"endpoints": []})

        limited = matches[: params.limit]
        response = {
            "metadata": {
                "category": params.category,
                "state": params.state,
                "query": params.query,
                "protocol": params.protocol,
                "totalEndpoints": len(matches),
                "returnedEndpoints": len(limited),
                "timestamp": self.timestamp(),
                "availableCategories": get_miniapp_categories(),
                "availableStates": get_miniapp_states(),
                "dataFreshness": DATA_FRESHNESS_NOTE,
            },
            "endpoints": [self.format_endpoint(e) for e in limited],
        }
        return self.json_result(response)

    @staticmethod
    def format_endpoint(endpoint: MiniAppEndpoint) -> dict[str, Any]:
        """Serialize an endpoint with its full URL and display fields."""
        data = endpoint.model_dump(by_alias=True, mode="json")
        data["fullUrl"] = f"{endpoint.protocol}://{endpoint.host}{endpoint.endpoint}"
        data["displayName"] = f"{endpoint.host}{endpoint.endpoint}"
        data["verificationStatus"] = VERIFICATION_LABELS.get(endpoint.state, "Unknown state")
        data["categoryDisplay"] = (
            f"{endpoint.category} / {endpoint.subcategory}" if endpoint.subcategory else endpoint.category
        )
        return data

    @staticmethod
    def _empty_message(params: MiniAppEndpointsInput) -> str:
        filters = []
        if params.category != "all":
            filters.append(f'category: "{params.category}"')
        if params.state != "all":
            filters.append(f'state: "{params.state}"')
        if params.query:
            filters.append(f'query: "{params.query}"')
        if params.protocol:
            filters.append(f'protocol: "{params.protocol}"')

        message = "No mini-app endpoints found"
        if filters:
            message += f" with filters {', '.join(filters)}"
        return message + '. Try other filters or use category "all" to see every available endpoint.'
