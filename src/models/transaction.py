"""
Transaction models.

A send moves through three records:
- TransactionRequest: what the user asked for (recipient, asset, amount)
- FeeQuote: the network fee shown on the confirm screen
- TransactionOutcome: what happened after broadcast

Outcome status lifecycle:
- pending: Broadcast, hash known, not yet mined
- confirmed: Mined successfully
- failed: Rejected before broadcast, reverted, or lost while waiting
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from .asset import AssetDescriptor, from_base_units, to_base_units


# Valid status values
STATUS_PENDING = "pending"
STATUS_CONFIRMED = "confirmed"
STATUS_FAILED = "failed"

# Allowed drift between amount x price and the fiat figure
FIAT_TOLERANCE = Decimal("0.01")


@dataclass(frozen=True)
class TransactionRequest:
    """A transfer the user wants to make."""
    recipient: str                    # 0x address; checksummed once reviewed
    asset: AssetDescriptor
    amount: Decimal                   # In asset units (e.g. 0.5 ETH)
    fiat_amount: Decimal              # In fiat units at `price`
    price: Decimal = Decimal(0)       # Fiat per asset unit, 0 = unknown

    def __post_init__(self):
        if self.price > 0:
            drift = abs(self.amount * self.price - self.fiat_amount)
            if drift > FIAT_TOLERANCE:
                raise ValueError(
                    f"Fiat amount {self.fiat_amount} does not match {self.amount} x {self.price}"
                )

    @property
    def base_units(self) -> int:
        """Amount in the asset's smallest unit (wei for ETH)."""
        return to_base_units(self.amount, self.asset.decimals)

    @property
    def key(self) -> tuple:
        """Identity used to tie a FeeQuote to exactly this request."""
        return (self.recipient.lower(), self.asset.kind.value,
                (self.asset.address or "").lower(), self.base_units)


@dataclass(frozen=True)
class FeeQuote:
    """Gas estimate for one specific request."""
    gas_limit: int
    gas_price: int                    # Wei per gas unit
    request_key: tuple = field(repr=False)
    native_decimals: int = 18

    @property
    def total_fee(self) -> int:
        """Fee ceiling in wei (gas_limit x gas_price)."""
        return self.gas_limit * self.gas_price

    @property
    def fee_native(self) -> Decimal:
        """Fee ceiling in native units (ETH)."""
        return from_base_units(self.total_fee, self.native_decimals)

    def matches(self, request: TransactionRequest) -> bool:
        return self.request_key == request.key

    def format_fee(self, symbol: str = "ETH") -> str:
        return f"{self.fee_native:.6f} {symbol}"


@dataclass
class TransactionOutcome:
    """Result of a broadcast attempt."""
    status: str                       # pending | confirmed | failed
    tx_hash: Optional[str] = None     # None if the failure happened before a hash existed
    reason: Optional[str] = None      # Failure reason (failed only)
    block_number: Optional[int] = None
    updated_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    VALID_STATUSES = (STATUS_PENDING, STATUS_CONFIRMED, STATUS_FAILED)

    @classmethod
    def pending(cls, tx_hash: str) -> "TransactionOutcome":
        return cls(status=STATUS_PENDING, tx_hash=tx_hash)

    @classmethod
    def confirmed(cls, tx_hash: str, block_number: Optional[int] = None) -> "TransactionOutcome":
        return cls(status=STATUS_CONFIRMED, tx_hash=tx_hash, block_number=block_number)

    @classmethod
    def failed(cls, reason: str, tx_hash: Optional[str] = None) -> "TransactionOutcome":
        return cls(status=STATUS_FAILED, tx_hash=tx_hash, reason=reason)

    @property
    def is_pending(self) -> bool:
        return self.status == STATUS_PENDING

    @property
    def is_confirmed(self) -> bool:
        return self.status == STATUS_CONFIRMED

    @property
    def is_failed(self) -> bool:
        return self.status == STATUS_FAILED

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "tx_hash": self.tx_hash,
            "reason": self.reason,
            "block_number": self.block_number,
            "updated_at": self.updated_at,
        }
