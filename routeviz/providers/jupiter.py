"""
Jupiter Provider for Solana.

- Token list lookups (symbol / mint address search), cached in memory
- Swap quotes from the v6 quote API
- Swap transaction building from a quoted route

No API key required; when one is configured it is sent as ``x-api-key``.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Dict, List, Optional

import httpx

from .base import (
    AggregatorError,
    AggregatorTimeout,
    SwapAggregator,
    TokenRegistry,
    TokenRegistryError,
)
from ..config import settings
from ..core.routes.models import QuoteParams, Route, TokenDescriptor
from ..core.routes.normalizer import route_payload

logger = logging.getLogger(__name__)

# Well-known token mints
NATIVE_SOL_MINT = "So11111111111111111111111111111111111111112"
USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
USDT_MINT = "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB"


def _headers(api_key: str) -> Dict[str, str]:
    headers = {"Content-Type": "application/json"}
    if api_key:
        headers["x-api-key"] = api_key
    return headers


def _error_message(response: httpx.Response) -> str:
    """Use the service's own error text when the body carries one."""
    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict):
        for key in ("error", "message", "errorMessage"):
            if data.get(key):
                return str(data[key])
    return f"HTTP error: {response.status_code}"


class _JupiterHttp:
    """Shared lazily-created AsyncClient handling."""

    def __init__(
        self,
        timeout_s: float,
        api_key: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._timeout_s = timeout_s
        self._api_key = api_key
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout_s,
                headers=_headers(self._api_key),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None


class JupiterTokenProvider(_JupiterHttp, TokenRegistry):
    """
    Jupiter token list provider.

    The full token list is fetched once and cached with a TTL; searches and
    lookups are served from memory.
    """

    name = "jupiter_tokens"

    def __init__(
        self,
        token_list_url: Optional[str] = None,
        *,
        timeout_s: Optional[float] = None,
        cache_ttl_seconds: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(
            timeout_s=timeout_s or settings.request_timeout_seconds,
            api_key=settings.jupiter_api_key,
            transport=transport,
        )
        self._token_list_url = token_list_url or settings.jupiter_token_list_url
        self._cache_ttl_seconds = (
            cache_ttl_seconds if cache_ttl_seconds is not None else settings.token_cache_ttl_seconds
        )

        self._by_address: Dict[str, TokenDescriptor] = {}
        self._cache_lock = asyncio.Lock()
        self._cache_loaded = False
        self._last_refresh: float = 0

    async def ready(self) -> bool:
        return True

    async def health_check(self) -> Dict[str, Any]:
        try:
            await self._ensure_cache()
        except TokenRegistryError as e:
            return {"status": "error", "reason": str(e)}
        return {"status": "healthy", "cached_tokens": len(self._by_address)}

    async def _ensure_cache(self) -> None:
        """Load token list into memory if not cached or expired."""
        async with self._cache_lock:
            now = time.time()
            if self._cache_loaded and (now - self._last_refresh) < self._cache_ttl_seconds:
                return

            client = await self._get_client()
            try:
                resp = await client.get(self._token_list_url)
                resp.raise_for_status()
                tokens_data = resp.json()
            except (httpx.HTTPError, ValueError) as e:
                if self._cache_loaded:
                    # Keep serving the stale list until the next refresh succeeds
                    logger.warning("Token list refresh failed, using cached list: %s", e)
                    return
                raise TokenRegistryError(f"Failed to load token list: {e}") from e

            if not isinstance(tokens_data, list):
                raise TokenRegistryError("Token list response must be a list")

            by_address: Dict[str, TokenDescriptor] = {}
            for item in tokens_data:
                if not isinstance(item, dict):
                    continue
                token = TokenDescriptor.from_api(item)
                if token.address:
                    by_address[token.address] = token

            self._by_address = by_address
            self._cache_loaded = True
            self._last_refresh = now
            logger.info("Loaded %d tokens from %s", len(by_address), self._token_list_url)

    async def get_token(self, address: str) -> Optional[TokenDescriptor]:
        await self._ensure_cache()
        return self._by_address.get(address)

    async def search(self, query: str, *, limit: int = 10) -> List[TokenDescriptor]:
        """
        Find tokens whose symbol or mint address contains ``query``.

        Exact symbol matches come first, then shorter names.
        """
        await self._ensure_cache()
        needle = query.strip().lower()
        if not needle:
            return []

        matches = [
            token
            for token in self._by_address.values()
            if needle in token.symbol.lower() or needle in token.address.lower()
        ]

        def sort_key(t: TokenDescriptor) -> tuple:
            is_exact = t.symbol.lower() == needle or t.address.lower() == needle
            return (not is_exact, len(t.name), t.symbol)

        matches.sort(key=sort_key)
        return matches[:limit]

    async def resolve(self, query: str) -> Optional[TokenDescriptor]:
        """Resolve a mint address or symbol to a single token."""
        token = await self.get_token(query)
        if token:
            return token
        matches = await self.search(query, limit=1)
        if matches and matches[0].symbol.lower() == query.strip().lower():
            return matches[0]
        return None

    def clear_cache(self) -> None:
        """Clear the token cache (useful for testing)."""
        self._by_address = {}
        self._cache_loaded = False
        self._last_refresh = 0


class JupiterSwapProvider(_JupiterHttp, SwapAggregator):
    """
    Jupiter swap provider: quotes and swap transaction building.

    Usage:
        provider = JupiterSwapProvider()
        quote = await provider.get_quote(params)
        tx = await provider.build_swap_transaction(route, user_public_key="...")
        # Sign and send the transaction via the wallet
    """

    name = "jupiter_swap"

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        timeout_s: Optional[float] = None,
        api_key: Optional[str] = None,
        wrap_and_unwrap_sol: Optional[bool] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(
            timeout_s=timeout_s or settings.request_timeout_seconds,
            api_key=settings.jupiter_api_key if api_key is None else api_key,
            transport=transport,
        )
        self._base_url = (base_url or settings.jupiter_quote_api_url).rstrip("/")
        self._wrap_and_unwrap_sol = (
            settings.wrap_and_unwrap_sol if wrap_and_unwrap_sol is None else wrap_and_unwrap_sol
        )

    async def ready(self) -> bool:
        return True

    async def health_check(self) -> Dict[str, Any]:
        return {"status": "healthy", "base_url": self._base_url, "api_key": bool(self._api_key)}

    @staticmethod
    def quote_params(params: QuoteParams, swap_mode: str = "ExactIn") -> Dict[str, str]:
        return {
            "inputMint": params.input_token.address,
            "outputMint": params.output_token.address,
            "amount": str(params.amount_minor),
            "slippageBps": str(params.slippage_bps),
            "swapMode": swap_mode,
        }

    async def _request(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        client = await self._get_client()
        url = f"{self._base_url}{path}"
        try:
            response = await client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise AggregatorTimeout(f"Jupiter {path} timed out: {e}") from e
        except httpx.HTTPError as e:
            raise AggregatorError(f"Jupiter {path} request failed: {e}") from e

        if response.is_error:
            raise AggregatorError(_error_message(response), status_code=response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            raise AggregatorError(f"Invalid JSON from Jupiter {path}: {response.text!r}") from e

        if isinstance(data, dict) and data.get("error"):
            raise AggregatorError(str(data["error"]), status_code=response.status_code)
        return data

    async def get_quote(self, params: QuoteParams) -> Dict[str, Any]:
        """Fetch a raw quote; the body is normalized by the caller."""
        logger.debug(
            "Jupiter quote: %s -> %s amount=%s slippage=%sbps",
            params.input_token.symbol,
            params.output_token.symbol,
            params.amount_minor,
            params.slippage_bps,
        )
        return await self._request("GET", "/quote", params=self.quote_params(params))

    async def build_swap_transaction(self, route: Route, user_public_key: str) -> str:
        """Build a swap transaction for exactly this route; returns it base64 encoded."""
        if not route.raw:
            raise AggregatorError("Route has no quote payload to build a transaction from")

        payload = {
            "quoteResponse": route_payload(route),
            "userPublicKey": user_public_key,
            "wrapAndUnwrapSol": self._wrap_and_unwrap_sol,
        }
        data = await self._request("POST", "/swap", json=payload)

        transaction = data.get("swapTransaction") if isinstance(data, dict) else None
        if not transaction:
            raise AggregatorError("Jupiter swap response is missing 'swapTransaction'")
        return str(transaction)


# Singleton instances
_token_provider: Optional[JupiterTokenProvider] = None
_swap_provider: Optional[JupiterSwapProvider] = None


def get_token_provider() -> JupiterTokenProvider:
    """Get the singleton Jupiter token provider."""
    global _token_provider
    if _token_provider is None:
        _token_provider = JupiterTokenProvider()
    return _token_provider


def get_swap_provider() -> JupiterSwapProvider:
    """Get the singleton Jupiter swap provider."""
    global _swap_provider
    if _swap_provider is None:
        _swap_provider = JupiterSwapProvider()
    return _swap_provider


__all__ = [
    "JupiterTokenProvider",
    "JupiterSwapProvider",
    "get_token_provider",
    "get_swap_provider",
    "NATIVE_SOL_MINT",
    "USDC_MINT",
    "USDT_MINT",
]
