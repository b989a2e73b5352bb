"""
Models package - Data models for Pocki.

Contains:
- AssetDescriptor: Native currency or validated token
- TransactionRequest, FeeQuote, TransactionOutcome: The send pipeline records
- Preferences, CardIcon: Display preferences
- AppSettings: Configuration
- WalletStore: JSON persistence
"""

from .asset import (
    AssetDescriptor,
    AssetKind,
    MAX_DISPLAY_DECIMALS,
    to_base_units,
    from_base_units,
)
from .transaction import (
    TransactionRequest,
    FeeQuote,
    TransactionOutcome,
    STATUS_PENDING,
    STATUS_CONFIRMED,
    STATUS_FAILED,
)
from .preferences import Preferences, CardIcon
from .settings import AppSettings
from .store import WalletStore, SECRET_KEY

__all__ = [
    "AssetDescriptor",
    "AssetKind",
    "MAX_DISPLAY_DECIMALS",
    "to_base_units",
    "from_base_units",
    "TransactionRequest",
    "FeeQuote",
    "TransactionOutcome",
    "STATUS_PENDING",
    "STATUS_CONFIRMED",
    "STATUS_FAILED",
    "Preferences",
    "CardIcon",
    "AppSettings",
    "WalletStore",
    "SECRET_KEY",
]
