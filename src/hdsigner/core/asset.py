"""
Asset amounts.

Converts business amounts into the chain's canonical asset text,
e.g. ``"1.0000 EOS"``.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, Overflow
from typing import Optional, Union

from hdsigner.config import SignerConfig, get_config
from hdsigner.errors import InvalidAmount

MAX_PRECISION = 18
MAX_AMOUNT = 2 ** 62 - 1

Number = Union[int, float, str, Decimal]


@dataclass(frozen=True)
class Symbol:
    """
    A token symbol with its implied precision.

    Attributes:
        code: 1-7 uppercase letters, e.g. "EOS"
        precision: Number of decimal places
    """

    code: str
    precision: int

    def __post_init__(self):
        if not (1 <= len(self.code) <= 7 and self.code.isalpha() and self.code.isupper()):
            raise InvalidAmount(f"Invalid symbol code: {self.code!r}", field="symbol")
        if not 0 <= self.precision <= MAX_PRECISION:
            raise InvalidAmount(f"Invalid symbol precision: {self.precision}", field="symbol")

    @classmethod
    def parse(cls, text: str, default_precision: int = 4) -> "Symbol":
        """Parse ``"EOS"`` or ``"4,EOS"``."""
        if not isinstance(text, str):
            raise InvalidAmount(f"Symbol must be a string, got {text!r}", field="symbol")
        if "," in text:
            precision, _, code = text.partition(",")
            if not precision.strip().isdigit():
                raise InvalidAmount(f"Invalid symbol precision in {text!r}", field="symbol")
            return cls(code.strip(), int(precision))
        return cls(text.strip(), default_precision)

    def __str__(self) -> str:
        return f"{self.precision},{self.code}"


def resolve_symbol(
    symbol: Optional[Union[str, Symbol]] = None,
    config: Optional[SignerConfig] = None,
) -> Symbol:
    """
    Resolve an optional symbol against the configured chain default.

    A bare code equal to the default symbol takes the default precision;
    any other bare code takes precision 4.
    """
    config = config or get_config()
    if symbol is None:
        return Symbol(config.default_symbol, config.default_precision)
    if isinstance(symbol, Symbol):
        return symbol
    if not isinstance(symbol, str):
        raise InvalidAmount(f"Symbol must be a string, got {symbol!r}", field="symbol")
    precision = config.default_precision if symbol.strip() == config.default_symbol else 4
    return Symbol.parse(symbol, precision)


@dataclass(frozen=True)
class Asset:
    """An amount in the smallest unit of a symbol."""

    amount: int
    symbol: Symbol

    @classmethod
    def from_value(cls, value: Number, symbol: Symbol, field: str = "amount") -> "Asset":
        """
        Convert a decimal quantity into an Asset.

        Raises:
            InvalidAmount: If the value is negative, not a number, or has
                more fractional digits than the symbol's precision
        """
        if isinstance(value, bool) or value is None:
            raise InvalidAmount(f"Amount must be a number, got {value!r}", field=field)

        try:
            # repr gives the shortest round-tripping text for floats
            quantity = Decimal(repr(value)) if isinstance(value, float) else Decimal(value)
        except (InvalidOperation, TypeError, ValueError):
            raise InvalidAmount(f"Amount must be a number, got {value!r}", field=field)

        if not quantity.is_finite():
            raise InvalidAmount(f"Amount must be finite, got {value!r}", field=field)
        if quantity < 0:
            raise InvalidAmount(f"Amount must not be negative, got {value!r}", field=field)

        try:
            scaled = quantity.scaleb(symbol.precision)
            integral = scaled.to_integral_value()
        except (Overflow, InvalidOperation):
            raise InvalidAmount(f"Amount {value!r} is too large", field=field)
        if scaled != integral:
            raise InvalidAmount(
                f"Amount {value!r} exceeds the {symbol.precision}-digit precision of {symbol.code}",
                field=field,
            )

        amount = int(scaled)
        if amount > MAX_AMOUNT:
            raise InvalidAmount(f"Amount {value!r} is too large", field=field)
        return cls(amount, symbol)

    @classmethod
    def parse(cls, text: str) -> "Asset":
        """Parse canonical asset text such as ``"1.0000 EOS"``."""
        try:
            number, code = text.strip().split(" ")
        except (AttributeError, ValueError):
            raise InvalidAmount(f"Invalid asset text: {text!r}")
        _, _, fraction = number.partition(".")
        return cls.from_value(number, Symbol(code, len(fraction)))

    def __str__(self) -> str:
        text = str(self.amount).rjust(self.symbol.precision + 1, "0")
        if self.symbol.precision:
            text = f"{text[:-self.symbol.precision]}.{text[-self.symbol.precision:]}"
        return f"{text} {self.symbol.code}"


def to_asset_string(
    value: Number,
    symbol: Optional[Union[str, Symbol]] = None,
    config: Optional[SignerConfig] = None,
    field: str = "amount",
) -> str:
    """
    Convert an amount to canonical asset text.

    Examples:
        >>> to_asset_string(1, "4,EOS")
        '1.0000 EOS'
    """
    return str(Asset.from_value(value, resolve_symbol(symbol, config), field))
