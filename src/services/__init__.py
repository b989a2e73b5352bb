"""
Services package - The send pipeline and everything around it.

Contains:
- AmountEntry: Keypad amount entry with native/fiat conversion
- FeeEstimator: Gas quotes for transfers
- TransactionExecutor: Confirm -> send -> settle state machine
- TokenValidator: ERC-20 probing
- Portfolio, PriceOracle: Balance and price refresh
- AppState: Explicit application state
"""

from .amounts import (
    AmountEntry,
    Representation,
    set_digit,
    parse_typed,
    to_native,
    to_fiat,
    set_max,
    format_fiat,
    format_native,
)
from .fees import FeeEstimator, build_transfer_tx
from .executor import TransactionExecutor, SendStep
from .tokens import TokenValidator, search_popular_tokens, popular_token_address
from .portfolio import (
    Portfolio,
    PortfolioSnapshot,
    AssetBalance,
    PriceOracle,
    AlchemyPriceOracle,
)
from .state import AppState

__all__ = [
    "AmountEntry",
    "Representation",
    "set_digit",
    "parse_typed",
    "to_native",
    "to_fiat",
    "set_max",
    "format_fiat",
    "format_native",
    "FeeEstimator",
    "build_transfer_tx",
    "TransactionExecutor",
    "SendStep",
    "TokenValidator",
    "search_popular_tokens",
    "popular_token_address",
    "Portfolio",
    "PortfolioSnapshot",
    "AssetBalance",
    "PriceOracle",
    "AlchemyPriceOracle",
    "AppState",
]
