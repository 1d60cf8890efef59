"""Tests for Pydantic data models."""

from mcp_blockchain_metadata.core.models import (
    NATIVE_TOKEN_ADDRESS,
    Repository,
    TokenInfo,
    ToolResult,
    VerificationState,
)


def test_token_model():
    """Test TokenInfo accepts token-list field names."""
    token = TokenInfo.model_validate(
        {
            "name": "USD Coin",
            "symbol": "USDC",
            "address": "0xB97EF9Ef8734C71904D8002F8b6Bc66Dd9c48a6E",
            "decimals": 6,
            "chainId": "43114",
            "logoURI": "https://example.com/usdc.png",
        }
    )

    assert token.symbol == "USDC"
    assert token.chain_id == "43114"
    assert token.logo_uri == "https://example.com/usdc.png"
    assert token.tags == []
    assert token.is_native is False
    assert token.price is None


def test_native_token_is_derived_from_address():
    """Test is_native follows the zero address, ignoring caller input."""
    native = TokenInfo(
        name="Avalanche", symbol="AVAX", address=NATIVE_TOKEN_ADDRESS, decimals=18, chain_id="43114"
    )
    spoofed = TokenInfo(
        name="Fake", symbol="FAKE", address="0x1234", decimals=18, chain_id="1", is_native=True
    )

    assert native.is_native is True
    assert spoofed.is_native is False


def test_token_serializes_with_aliases():
    """Test by-alias dump uses camelCase keys."""
    token = TokenInfo(name="Alpha", symbol="ALP", address="0xa", decimals=18, chain_id="1")
    data = token.model_dump(by_alias=True)

    assert data["chainId"] == "1"
    assert data["isNative"] is False
    assert "logoURI" in data


def test_repository_model():
    """Test Repository parses the camelCase document."""
    repository = Repository.model_validate(
        {
            "lastUpdated": "2025-01-01T00:00:00Z",
            "version": "1.2.0",
            "miniAppEndpoints": [
                {
                    "host": "app.example.com",
                    "state": "trusted",
                    "category": "defi",
                    "verifiedAt": "2025-01-01",
                    "protocol": "https",
                    "endpoint": "/api/swap",
                }
            ],
            "templates": [
                {
                    "baseUrl": "https://templates.example.com",
                    "categories": [
                        {
                            "id": "swap",
                            "name": "Swap",
                            "templates": [
                                {"id": "tj-swap", "name": "TJ Swap", "protocol": "traderjoe", "endpoint": "/tj"}
                            ],
                        }
                    ],
                }
            ],
        }
    )

    assert repository.version == "1.2.0"
    assert repository.mini_app_endpoints[0].state == VerificationState.TRUSTED
    assert repository.templates[0].base_url == "https://templates.example.com"
    assert repository.templates[0].categories[0].templates[0].id == "tj-swap"
    assert repository.integrator_domains == []
    assert repository.malicious_domains == []


def test_tool_result_response():
    """Test tool results serialize with protocol field names."""
    plain = ToolResult.text("hello").to_response()
    structured = ToolResult.text("oops", structured={"error": {"hint": None}}, is_error=True).to_response()

    assert plain == {"content": [{"type": "text", "text": "hello"}], "isError": False}
    assert structured["isError"] is True
    assert structured["structuredContent"] == {"error": {"hint": None}}
