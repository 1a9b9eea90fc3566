"""
Tests for the Jupiter token and swap providers using httpx.MockTransport.
"""

import json
from decimal import Decimal

import httpx
import pytest

from routeviz.core.routes import TokenDescriptor, normalize_quote_response
from routeviz.core.routes.models import QuoteParams
from routeviz.providers.base import AggregatorError, AggregatorTimeout, TokenRegistryError
from routeviz.providers.jupiter import (
    NATIVE_SOL_MINT,
    USDC_MINT,
    USDT_MINT,
    JupiterSwapProvider,
    JupiterTokenProvider,
)


TOKEN_LIST = [
    {"address": NATIVE_SOL_MINT, "symbol": "SOL", "name": "Wrapped SOL", "decimals": 9, "logoURI": "https://x/sol.png"},
    {"address": USDC_MINT, "symbol": "USDC", "name": "USD Coin", "decimals": 6},
    {"address": USDT_MINT, "symbol": "USDT", "name": "USDT", "decimals": 6},
    {"address": "USDCetXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXX", "symbol": "USDCet", "name": "USD Coin (Wormhole)", "decimals": 6},
    "not-a-token",
]

QUOTE_BODY = {
    "inputMint": NATIVE_SOL_MINT,
    "outputMint": USDC_MINT,
    "inAmount": "1000000000",
    "outAmount": "145000000",
    "priceImpactPct": "0.01",
    "routePlan": [
        {
            "swapInfo": {
                "ammKey": "whirlpool-1",
                "label": "Whirlpool",
                "inputMint": NATIVE_SOL_MINT,
                "outputMint": USDC_MINT,
                "inAmount": "1000000000",
                "outAmount": "145000000",
                "feeAmount": "300",
                "feeMint": NATIVE_SOL_MINT,
            },
            "percent": 100,
        }
    ],
}


@pytest.fixture
def params():
    return QuoteParams(
        input_token=TokenDescriptor(address=NATIVE_SOL_MINT, symbol="SOL", decimals=9),
        output_token=TokenDescriptor(address=USDC_MINT, symbol="USDC", decimals=6),
        amount=Decimal("1"),
        amount_minor=1_000_000_000,
        slippage_bps=50,
    )


def _token_provider(handler, **kwargs):
    return JupiterTokenProvider(
        "https://tokens.test/all",
        timeout_s=1,
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def _swap_provider(handler, **kwargs):
    kwargs.setdefault("api_key", "")
    return JupiterSwapProvider(
        "https://quote.test/v6/",
        timeout_s=1,
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


class TestJupiterTokenProvider:
    @pytest.mark.asyncio
    async def test_get_token(self):
        provider = _token_provider(lambda request: httpx.Response(200, json=TOKEN_LIST))

        token = await provider.get_token(NATIVE_SOL_MINT)

        assert token.symbol == "SOL"
        assert token.decimals == 9
        assert token.logo_uri == "https://x/sol.png"
        assert await provider.get_token("missing") is None
        await provider.close()

    @pytest.mark.asyncio
    async def test_search_exact_symbol_first(self):
        provider = _token_provider(lambda request: httpx.Response(200, json=TOKEN_LIST))

        results = await provider.search("usdc")

        assert [t.symbol for t in results] == ["USDC", "USDCet"]
        assert await provider.search("   ") == []
        assert len(await provider.search("usd", limit=1)) == 1

    @pytest.mark.asyncio
    async def test_resolve_by_symbol_or_address(self):
        provider = _token_provider(lambda request: httpx.Response(200, json=TOKEN_LIST))

        assert (await provider.resolve("sol")).address == NATIVE_SOL_MINT
        assert (await provider.resolve(USDT_MINT)).symbol == "USDT"
        assert await provider.resolve("US") is None

    @pytest.mark.asyncio
    async def test_list_is_cached(self):
        calls = []

        def handler(request):
            calls.append(request.url)
            return httpx.Response(200, json=TOKEN_LIST)

        provider = _token_provider(handler)
        await provider.get_token(USDC_MINT)
        await provider.search("sol")

        assert len(calls) == 1

        provider.clear_cache()
        await provider.get_token(USDC_MINT)
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_stale_list_kept_when_refresh_fails(self):
        responses = [httpx.Response(200, json=TOKEN_LIST), httpx.Response(500)]
        provider = _token_provider(lambda request: responses.pop(0), cache_ttl_seconds=0)

        await provider.get_token(USDC_MINT)
        token = await provider.get_token(USDC_MINT)

        assert token.symbol == "USDC"

    @pytest.mark.asyncio
    async def test_first_load_failure(self):
        provider = _token_provider(lambda request: httpx.Response(503))

        with pytest.raises(TokenRegistryError):
            await provider.get_token(USDC_MINT)

        health = await provider.health_check()
        assert health["status"] == "error"


class TestJupiterSwapProvider:
    @pytest.mark.asyncio
    async def test_get_quote_query_params(self, params):
        seen = {}

        def handler(request):
            seen["url"] = request.url
            seen["headers"] = request.headers
            return httpx.Response(200, json=QUOTE_BODY)

        provider = _swap_provider(handler, api_key="secret")
        body = await provider.get_quote(params)

        assert body == QUOTE_BODY
        assert seen["url"].path == "/v6/quote"
        assert seen["url"].params["inputMint"] == NATIVE_SOL_MINT
        assert seen["url"].params["outputMint"] == USDC_MINT
        assert seen["url"].params["amount"] == "1000000000"
        assert seen["url"].params["slippageBps"] == "50"
        assert seen["url"].params["swapMode"] == "ExactIn"
        assert seen["headers"]["x-api-key"] == "secret"

    @pytest.mark.asyncio
    async def test_no_api_key_header_when_unset(self, params):
        seen = {}

        def handler(request):
            seen["headers"] = request.headers
            return httpx.Response(200, json=QUOTE_BODY)

        await _swap_provider(handler).get_quote(params)

        assert "x-api-key" not in seen["headers"]

    @pytest.mark.asyncio
    async def test_service_error_message_is_kept(self, params):
        provider = _swap_provider(
            lambda request: httpx.Response(400, json={"error": "Could not find any route"})
        )

        with pytest.raises(AggregatorError) as exc:
            await provider.get_quote(params)

        assert exc.value.message == "Could not find any route"
        assert exc.value.status_code == 400

    @pytest.mark.asyncio
    async def test_error_without_body(self, params):
        provider = _swap_provider(lambda request: httpx.Response(502, text="Bad gateway"))

        with pytest.raises(AggregatorError, match="HTTP error: 502"):
            await provider.get_quote(params)

    @pytest.mark.asyncio
    async def test_error_field_in_success_body(self, params):
        provider = _swap_provider(lambda request: httpx.Response(200, json={"error": "Rate limited"}))

        with pytest.raises(AggregatorError, match="Rate limited"):
            await provider.get_quote(params)

    @pytest.mark.asyncio
    async def test_invalid_json(self, params):
        provider = _swap_provider(lambda request: httpx.Response(200, text="<html>"))

        with pytest.raises(AggregatorError, match="Invalid JSON"):
            await provider.get_quote(params)

    @pytest.mark.asyncio
    async def test_timeout(self, params):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(AggregatorTimeout):
            await _swap_provider(handler).get_quote(params)

    @pytest.mark.asyncio
    async def test_connection_error(self, params):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(AggregatorError) as exc:
            await _swap_provider(handler).get_quote(params)

        assert not isinstance(exc.value, AggregatorTimeout)

    @pytest.mark.asyncio
    async def test_build_swap_sends_exact_route_payload(self, params):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"swapTransaction": "AQAB", "lastValidBlockHeight": 1})

        provider = _swap_provider(handler, wrap_and_unwrap_sol=False)
        route = normalize_quote_response(QUOTE_BODY, params).routes[0]

        transaction = await provider.build_swap_transaction(route, "Wallet1111")

        assert transaction == "AQAB"
        assert seen["path"] == "/v6/swap"
        assert seen["body"]["quoteResponse"] == QUOTE_BODY
        assert seen["body"]["userPublicKey"] == "Wallet1111"
        assert seen["body"]["wrapAndUnwrapSol"] is False

    @pytest.mark.asyncio
    async def test_build_swap_requires_transaction(self, params):
        provider = _swap_provider(lambda request: httpx.Response(200, json={}))
        route = normalize_quote_response(QUOTE_BODY, params).routes[0]

        with pytest.raises(AggregatorError, match="swapTransaction"):
            await provider.build_swap_transaction(route, "Wallet1111")

    @pytest.mark.asyncio
    async def test_close_resets_client(self, params):
        provider = _swap_provider(lambda request: httpx.Response(200, json=QUOTE_BODY))
        await provider.get_quote(params)

        await provider.close()

        assert provider._client is None
