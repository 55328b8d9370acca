import re
from dataclasses import dataclass
from decimal import Decimal
from typing import ClassVar

from errors import AmountOverflowError

SCALE = 4
UNITS_PER_WHOLE = 10 ** SCALE

# Signed 64-bit range of ten-thousandths.
MIN_UNITS = -(2 ** 63)
MAX_UNITS = 2 ** 63 - 1
_MAX_DIGITS = len(str(MAX_UNITS))
_DECIMAL_TEXT = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?", re.ASCII)


@dataclass(frozen=True, order=True)
class Amount:
    """
    Fixed-precision monetary amount with four fractional digits.

    Stored as an integer count of ten-thousandths so addition and subtraction
    are exact. Results outside the signed 64-bit range raise AmountOverflowError.
    """

    units: int = 0

    ZERO: ClassVar["Amount"]

    def __post_init__(self):
        if not MIN_UNITS <= self.units <= MAX_UNITS:
            raise AmountOverflowError(self.units)

    @classmethod
    def parse(cls, text: str) -> "Amount":
        """
        Parse decimal text directly into fixed precision, never through float.

        Accepts ASCII digits with an optional sign, decimal point and exponent.
        Raises ValueError for any other text or for more than SCALE significant
        fractional digits, and AmountOverflowError when the value does not fit.
        """
        stripped = text.strip()
        if not _DECIMAL_TEXT.fullmatch(stripped):
            raise ValueError(f"invalid amount {text!r}")

        sign, digits, exponent = Decimal(stripped).as_tuple()
        if not any(digits):
            return cls.ZERO

        shift = exponent + SCALE
        if shift < 0:
            if any(digits[shift:]):
                raise ValueError(f"amount {text!r} has more than {SCALE} fractional digits")
            digits, shift = digits[:shift], 0

        if len(digits) + shift > _MAX_DIGITS:
            raise AmountOverflowError(MAX_UNITS + 1 if not sign else MIN_UNITS - 1)
        units = int("".join(map(str, digits))) * 10 ** shift

        return cls(-units if sign else units)

    def __add__(self, other: "Amount") -> "Amount":
        if not isinstance(other, Amount):
            return NotImplemented
        return Amount(self.units + other.units)

    def __sub__(self, other: "Amount") -> "Amount":
        if not isinstance(other, Amount):
            return NotImplemented
        return Amount(self.units - other.units)

    def compare(self, other: "Amount") -> int:
        return (self.units > other.units) - (self.units < other.units)

    def is_negative(self) -> bool:
        return self.units < 0

    def is_positive(self) -> bool:
        return self.units > 0

    def to_decimal(self) -> Decimal:
        return Decimal(self.units).scaleb(-SCALE)

    def __str__(self) -> str:
        whole, fraction = divmod(abs(self.units), UNITS_PER_WHOLE)
        sign = "-" if self.units < 0 else ""
        return f"{sign}{whole}.{fraction:0{SCALE}d}"

    def __repr__(self) -> str:
        return f"Amount('{self}')"


Amount.ZERO = Amount(0)
