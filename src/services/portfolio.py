"""
Portfolio - Balances and prices, refreshed on demand.

refresh() is idempotent: call it from a timer, after a send, or whenever
the user pulls to refresh. Failures degrade to zero balances or zero
prices, never to an exception.
"""

import asyncio
import json
import logging
import urllib.parse
import urllib.request
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Iterable, Optional

from models import AssetDescriptor, from_base_units
from networks import NetworkLayer

logger = logging.getLogger(__name__)

PRICE_REQUEST_TIMEOUT = 10  # seconds


# ============================================
# Price Oracle
# ============================================

class PriceOracle:
    """Unit prices in USD by symbol. Missing symbols mean price 0."""

    async def get_prices(self, symbols: Iterable[str]) -> dict[str, Decimal]:
        raise NotImplementedError


class AlchemyPriceOracle(PriceOracle):
    """Prices from the Alchemy by-symbol endpoint."""

    def __init__(self, api_url: str, api_key: str, timeout: float = PRICE_REQUEST_TIMEOUT):
        self.api_url = api_url
        self.api_key = api_key
        self.timeout = timeout

    def _fetch(self, symbols: list[str]) -> dict:
        query = urllib.parse.urlencode({"symbols": ",".join(symbols)})
        request = urllib.request.Request(
            f"{self.api_url}?{query}",
            headers={"Authorization": f"Bearer {self.api_key}", "Accept": "application/json"},
        )
        with urllib.request.urlopen(request, timeout=self.timeout) as response:
            return json.loads(response.read().decode("utf-8"))

    async def get_prices(self, symbols: Iterable[str]) -> dict[str, Decimal]:
        symbols = sorted({s.upper() for s in symbols})
        if not symbols or not self.api_key:
            return {}
        try:
            data = await asyncio.to_thread(self._fetch, symbols)
        except Exception as e:
            logger.warning(f"Failed to fetch token prices: {e}")
            return {}
        return parse_price_response(data)


def parse_price_response(data: dict) -> dict[str, Decimal]:
    """Pull {symbol: price} out of a by-symbol response, skipping bad entries."""
    prices = {}
    for item in (data or {}).get("data") or []:
        try:
            symbol = item["symbol"]
            value = Decimal(str(item["prices"][0]["value"]))
        except (KeyError, IndexError, TypeError, InvalidOperation):
            continue
        if symbol and value.is_finite() and value > 0:
            prices[symbol.upper()] = value
    return prices


# ============================================
# Balances
# ============================================

@dataclass
class AssetBalance:
    """A native or token balance with its fiat value."""
    asset: AssetDescriptor
    raw: int              # Raw balance in smallest unit
    price: Decimal        # USD per unit, 0 if unknown

    @property
    def balance(self) -> Decimal:
        return from_base_units(self.raw, self.asset.decimals)

    @property
    def fiat_value(self) -> Decimal:
        return self.balance * self.price


@dataclass
class PortfolioSnapshot:
    assets: list[AssetBalance] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def total_fiat(self) -> Decimal:
        return sum((a.fiat_value for a in self.assets), Decimal(0))

    def find(self, symbol: str) -> Optional[AssetBalance]:
        for asset_balance in self.assets:
            if asset_balance.asset.symbol.upper() == symbol.upper():
                return asset_balance
        return None


class Portfolio:
    """Reads every balance the wallet shows."""

    def __init__(self, network: NetworkLayer, native: AssetDescriptor,
                 oracle: Optional[PriceOracle] = None):
        self.network = network
        self.native = native
        self.oracle = oracle
        self.snapshot = PortfolioSnapshot()

    async def _native_balance(self, address: str, prices: dict, errors: list) -> AssetBalance:
        price = prices.get(self.native.symbol.upper(), Decimal(0))
        try:
            raw = await self.network.get_balance(address)
        except Exception as e:
            logger.error(f"Balance fetch error: {e}")
            errors.append("Failed to fetch balances.")
            raw = 0
        return AssetBalance(asset=self.native, raw=raw, price=price)

    async def _token_balance(self, token: AssetDescriptor, address: str, prices: dict) -> AssetBalance:
        try:
            raw = await self.network.call_token(token.address, "balanceOf", address)
        except Exception as e:
            logger.warning(f"Failed to fetch balance for {token.symbol}: {e}")
            return AssetBalance(asset=token, raw=0, price=Decimal(0))
        return AssetBalance(asset=token, raw=int(raw), price=prices.get(token.symbol.upper(), Decimal(0)))

    async def refresh(self, address: str, tokens: Iterable[AssetDescriptor] = ()) -> PortfolioSnapshot:
        """Fetch prices, then the native and every token balance."""
        tokens = list(tokens)
        prices = {}
        if self.oracle is not None:
            symbols = [self.native.symbol] + [t.symbol for t in tokens]
            prices = await self.oracle.get_prices(symbols)

        errors: list[str] = []
        results = await asyncio.gather(
            self._native_balance(address, prices, errors),
            *(self._token_balance(t, address, prices) for t in tokens),
        )
        self.snapshot = PortfolioSnapshot(assets=list(results), errors=errors)
        return self.snapshot
