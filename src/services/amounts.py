"""
Amount Resolver - Keypad entry and native/fiat conversion.

One amount, two views:
- NATIVE: asset units (ETH, USDC, ...)
- FIAT: USD at a caller-supplied unit price

A price of 0 means "unknown"; the fiat view is then always 0.
"""

from decimal import Decimal, ROUND_DOWN, ROUND_HALF_UP
from enum import Enum
from typing import Optional

from errors import InvalidAmount
from models import AssetDescriptor, TransactionRequest, MAX_DISPLAY_DECIMALS

FIAT_DECIMALS = 2
KEYPAD_DIGITS = "0123456789"
KEY_DECIMAL = "."
KEY_DELETE = "del"


class Representation(str, Enum):
    NATIVE = "native"
    FIAT = "fiat"


def _dec(value) -> Decimal:
    """Accept Decimal, int, float or str without float artifacts."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def max_fraction_digits(representation: Representation, asset_decimals: int = 18) -> int:
    """Fraction digits the keypad accepts in a representation."""
    if representation == Representation.FIAT:
        return FIAT_DECIMALS
    return min(asset_decimals, MAX_DISPLAY_DECIMALS)


def set_digit(current_raw: str, key: str,
              representation: Representation = Representation.NATIVE,
              asset_decimals: int = 18) -> str:
    """
    Apply one keypad press to the raw amount text.

    Digits append (replacing a lone "0"), "." appends once, "del" drops the
    last character down to "0". A press that would exceed the allowed
    fraction digits leaves the text unchanged.
    """
    max_decimals = max_fraction_digits(representation, asset_decimals)

    if key == KEY_DELETE:
        new_raw = current_raw[:-1] if len(current_raw) > 1 else "0"
    elif key == KEY_DECIMAL:
        if KEY_DECIMAL in current_raw or max_decimals == 0:
            return current_raw
        new_raw = current_raw + KEY_DECIMAL
    elif len(key) == 1 and key in KEYPAD_DIGITS:
        new_raw = key if current_raw == "0" else current_raw + key
    else:
        raise ValueError(f"Unknown keypad key: {key!r}")

    parts = new_raw.split(KEY_DECIMAL)
    if len(parts) > 1 and len(parts[1]) > max_decimals:
        return current_raw
    return new_raw


def parse_raw(raw: str) -> Decimal:
    """Keypad text -> Decimal. "" and "5." are fine; garbage is 0."""
    text = (raw or "0").strip()
    if text.endswith(KEY_DECIMAL):
        text = text[:-1] or "0"
    try:
        value = Decimal(text)
    except ArithmeticError:
        return Decimal(0)
    return value if value.is_finite() else Decimal(0)


def parse_typed(text: str, representation: Representation = Representation.NATIVE,
                asset_decimals: int = 18) -> str:
    """
    Whole amount typed at once -> keypad text.

    Unlike keypad presses nothing is dropped: input the keypad could not
    produce raises.

    Raises:
        InvalidAmount: Not a plain non-negative decimal, or more fraction
            digits than the representation allows.
    """
    text = (text or "").strip()
    if not text or any(c not in KEYPAD_DIGITS + KEY_DECIMAL for c in text):
        raise InvalidAmount()
    try:
        value = Decimal(text)
    except ArithmeticError as e:
        raise InvalidAmount() from e

    max_decimals = max_fraction_digits(representation, asset_decimals)
    fraction = text.partition(KEY_DECIMAL)[2]
    if len(fraction.rstrip("0")) > max_decimals:
        raise InvalidAmount(f"At most {max_decimals} decimal places for this amount.")
    return f"{value:f}"


def to_native(amount, representation: Representation, price) -> Decimal:
    """Amount in asset units. Fiat with an unknown price is 0."""
    amount, price = _dec(amount), _dec(price)
    if representation == Representation.NATIVE:
        return amount
    if price <= 0:
        return Decimal(0)
    return amount / price


def to_fiat(amount, representation: Representation, price) -> Decimal:
    """Amount in fiat units. Native with an unknown price is 0."""
    amount, price = _dec(amount), _dec(price)
    if representation == Representation.FIAT:
        return amount
    if price <= 0:
        return Decimal(0)
    return amount * price


def set_max(balance, representation: Representation, price,
            asset_decimals: int = 18) -> Decimal:
    """
    Full balance in the active representation.

    Truncated (never rounded up) so the result never exceeds the balance.
    """
    digits = max_fraction_digits(representation, asset_decimals)
    value = to_fiat(balance, Representation.NATIVE, price) \
        if representation == Representation.FIAT else _dec(balance)
    return value.quantize(Decimal(1).scaleb(-digits), rounding=ROUND_DOWN)


def format_fiat(amount) -> str:
    """Format as dollars, e.g. $1000.00"""
    value = _dec(amount).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return f"${value}"


def format_native(amount, decimals: int = MAX_DISPLAY_DECIMALS) -> str:
    """Format asset units without trailing zeros, e.g. 0.25"""
    digits = min(decimals, MAX_DISPLAY_DECIMALS)
    value = _dec(amount).quantize(Decimal(1).scaleb(-digits), rounding=ROUND_DOWN)
    text = f"{value:f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text or "0"


class AmountEntry:
    """
    The amount being typed on the send screen.

    Usage:
        entry = AmountEntry(eth, price=Decimal("2000"))
        for key in "0.5":
            entry.press(key)
        entry.fiat_display       # "$1000.00"
        entry.switch_representation()
    """

    def __init__(self, asset: AssetDescriptor, price=0,
                 representation: Representation = Representation.NATIVE):
        self.asset = asset
        self.price = _dec(price)
        self.representation = representation
        self.raw = "0"

    @property
    def amount(self) -> Decimal:
        """Value of the raw text in the active representation."""
        return parse_raw(self.raw)

    @property
    def native_amount(self) -> Decimal:
        return to_native(self.amount, self.representation, self.price)

    @property
    def fiat_amount(self) -> Decimal:
        return to_fiat(self.amount, self.representation, self.price)

    @property
    def native_display(self) -> str:
        return format_native(self.native_amount, self.asset.decimals)

    @property
    def fiat_display(self) -> str:
        return format_fiat(self.fiat_amount)

    def press(self, key: str) -> str:
        self.raw = set_digit(self.raw, key, self.representation, self.asset.decimals)
        return self.raw

    def set_text(self, text: str) -> str:
        """Replace the amount with one typed in full (CLI, paste)."""
        self.raw = parse_typed(text, self.representation, self.asset.decimals)
        return self.raw

    def clear(self) -> None:
        self.raw = "0"

    def switch_representation(self) -> Representation:
        """Flip NATIVE <-> FIAT, carrying the current value across."""
        if self.representation == Representation.NATIVE:
            value = to_fiat(self.amount, Representation.NATIVE, self.price)
            self.representation = Representation.FIAT
            self.raw = f"{value.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP):f}"
        else:
            value = to_native(self.amount, Representation.FIAT, self.price)
            self.representation = Representation.NATIVE
            self.raw = format_native(value, self.asset.decimals)
        return self.representation

    def use_max(self, balance) -> str:
        value = set_max(balance, self.representation, self.price, self.asset.decimals)
        self.raw = f"{value:f}"
        return self.raw

    def select_asset(self, asset: AssetDescriptor, price=0) -> None:
        """Switch to another asset; the typed amount starts over."""
        self.asset = asset
        self.price = _dec(price)
        self.clear()

    def to_request(self, recipient: str) -> TransactionRequest:
        native = self.native_amount
        return TransactionRequest(
            recipient=recipient.strip(),
            asset=self.asset,
            amount=native,
            fiat_amount=to_fiat(native, Representation.NATIVE, self.price),
            price=self.price,
        )
