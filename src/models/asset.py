"""
Asset model.

An AssetDescriptor is the validated identity of something the wallet can
send: the network's native currency or an ERC-20 token contract.
"""

from dataclasses import dataclass, asdict
from decimal import Decimal, ROUND_DOWN
from enum import Enum
from typing import Optional

from networks import NetworkConfig

# Display precision never goes past this many fraction digits
MAX_DISPLAY_DECIMALS = 8


def to_base_units(amount: Decimal, decimals: int) -> int:
    """Decimal amount -> integer smallest units, truncating extra digits."""
    scaled = (Decimal(amount) * (Decimal(10) ** decimals)).quantize(Decimal(1), rounding=ROUND_DOWN)
    return int(scaled)


def from_base_units(raw: int, decimals: int) -> Decimal:
    """Integer smallest units -> exact Decimal amount."""
    return Decimal(raw) / (Decimal(10) ** decimals)


class AssetKind(str, Enum):
    NATIVE = "native"
    TOKEN = "token"


@dataclass(frozen=True)
class AssetDescriptor:
    """A native currency or a token contract that passed validation."""
    kind: AssetKind
    symbol: str
    name: str
    decimals: int
    address: Optional[str] = None  # Checksummed contract address, tokens only

    @classmethod
    def native(cls, network: NetworkConfig) -> "AssetDescriptor":
        """Descriptor for the network's native currency."""
        return cls(
            kind=AssetKind.NATIVE,
            symbol=network.native_symbol,
            name=network.native_name,
            decimals=network.native_decimals,
        )

    @classmethod
    def token(cls, address: str, symbol: str, name: str, decimals: int) -> "AssetDescriptor":
        return cls(
            kind=AssetKind.TOKEN,
            symbol=symbol,
            name=name,
            decimals=decimals,
            address=address,
        )

    @property
    def is_native(self) -> bool:
        return self.kind == AssetKind.NATIVE

    @property
    def display_decimals(self) -> int:
        """Fraction digits accepted on the keypad for this asset."""
        return min(self.decimals, MAX_DISPLAY_DECIMALS)

    def to_dict(self) -> dict:
        d = asdict(self)
        d["kind"] = self.kind.value
        return d

    @classmethod
    def from_dict(cls, data: dict) -> "AssetDescriptor":
        """Create from dictionary with input validation."""
        decimals = data.get("decimals")
        if not isinstance(decimals, int) or not 0 <= decimals <= 255:
            raise ValueError(f"decimals must be an integer in 0..255, got {decimals}")

        kind = AssetKind(data.get("kind", AssetKind.TOKEN.value))
        if kind == AssetKind.TOKEN and not data.get("address"):
            raise ValueError("Token asset requires a contract address")

        return cls(
            kind=kind,
            symbol=data["symbol"],
            name=data.get("name", data["symbol"]),
            decimals=decimals,
            address=data.get("address"),
        )
