from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from ..core.routes.models import QuoteParams, Route, TokenDescriptor


class Provider(ABC):
    """Base provider interface"""

    name: str
    timeout_s: float = 10

    @abstractmethod
    async def ready(self) -> bool:
        """Check if provider is ready to serve requests"""
        pass

    @abstractmethod
    async def health_check(self) -> Dict[str, Any]:
        """Return provider health status"""
        pass


class AggregatorError(Exception):
    """The aggregation service returned an error or could not be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class AggregatorTimeout(AggregatorError):
    """The aggregation service did not answer in time."""


class TokenRegistryError(Exception):
    """Token metadata could not be loaded."""


class SwapAggregator(Provider):
    """Provider for multi-hop swap quotes and swap transactions"""

    @abstractmethod
    async def get_quote(self, params: QuoteParams) -> Dict[str, Any]:
        """Fetch the raw quote body for the given parameters"""
        pass

    @abstractmethod
    async def build_swap_transaction(self, route: Route, user_public_key: str) -> str:
        """Build an unsigned, serialized transaction for the given route"""
        pass


class TokenRegistry(Provider):
    """Provider for token metadata"""

    @abstractmethod
    async def search(self, query: str, *, limit: int = 10) -> List[TokenDescriptor]:
        """Find tokens by symbol or address"""
        pass

    @abstractmethod
    async def get_token(self, address: str) -> Optional[TokenDescriptor]:
        """Look up a token by mint address"""
        pass


class WalletProvider(ABC):
    """Signing capability delegated to an external wallet"""

    @abstractmethod
    async def get_public_key(self) -> Optional[str]:
        """Return the connected public key, or None when no wallet is connected"""
        pass

    @abstractmethod
    async def sign_and_submit(self, transaction: str) -> str:
        """Sign and submit a serialized transaction; return its signature"""
        pass
