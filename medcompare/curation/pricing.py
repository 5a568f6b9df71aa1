"""
Price parsing and price-difference computation.

Prices arrive as currency-formatted strings (``"₹120.50"``, ``"₹ 1,299"``).
Every comparison parses them to ``Decimal``; floats never enter the
arithmetic, so ``"₹0.10"`` vs ``"₹0.30"`` compares exactly.

Price delta
-----------
    percentage        = round_half_up( |alt - orig| / orig * 100 )
    is_more_expensive = alt > orig
    amount            = |alt - orig|, quantized to 0.01

A zero, negative, or unparsable price, or a difference too large to quantize,
raises ``PriceArithmeticError``; no NaN or Infinity ever reaches the display layer.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from medcompare.errors import PriceArithmeticError

_CENTS = Decimal("0.01")


@dataclass(frozen=True)
class PriceDelta:
    """Difference of an alternative's price relative to the original.

    Attributes:
        percentage:        Absolute difference as a whole-number percentage.
        is_more_expensive: True when the alternative costs strictly more.
        amount:            Absolute difference in currency units (2 dp).
    """

    percentage:        int
    is_more_expensive: bool
    amount:            Decimal

    @property
    def caption(self) -> str:
        """``"20% Expensive"`` / ``"20% Cheaper"`` badge text."""
        word = "Expensive" if self.is_more_expensive else "Cheaper"
        return f"{self.percentage}% {word}"

    def savings_text(self, currency_symbol: str = "₹") -> str:
        """``"Pay ₹20.00"`` / ``"Save ₹20.00"`` line under the price."""
        verb = "Pay" if self.is_more_expensive else "Save"
        return f"{verb} {currency_symbol}{self.amount}"


def parse_price(text: str, currency_symbol: str = "₹") -> Decimal:
    """Parse a currency-formatted price into a ``Decimal``.

    Strips the currency symbol, surrounding whitespace, and thousands
    separators.

    Raises:
        PriceArithmeticError: If the remaining text is not a finite number.
    """
    cleaned = str(text).replace(currency_symbol, "").replace(",", "").strip()
    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        raise PriceArithmeticError(
            f"Cannot parse price {text!r}.", price=text
        ) from None
    if not value.is_finite():
        raise PriceArithmeticError(f"Price {text!r} is not a finite amount.", price=text)
    return value


def price_difference(
    original_price:    str,
    alternative_price: str,
    currency_symbol:   str = "₹",
) -> PriceDelta:
    """Compute the price delta of an alternative relative to the original.

    Args:
        original_price:    Original medication's price string (denominator).
        alternative_price: Alternative's price string.
        currency_symbol:   Symbol to strip before parsing.

    Returns:
        PriceDelta with whole-number percentage and direction.

    Raises:
        PriceArithmeticError: If either price is unparsable, or the original
            price is zero or negative, or the difference is too large
            to quantize.
    """
    orig = parse_price(original_price, currency_symbol)
    alt = parse_price(alternative_price, currency_symbol)

    if orig <= 0:
        raise PriceArithmeticError(
            f"Original price {original_price!r} must be positive to compute a ratio.",
            price=original_price,
        )
    if alt < 0:
        raise PriceArithmeticError(
            f"Alternative price {alternative_price!r} is negative.",
            price=alternative_price,
        )

    diff = abs(alt - orig)
    try:
        percentage = (diff / orig * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
        amount = diff.quantize(_CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise PriceArithmeticError(
            f"Price difference between {original_price!r} and {alternative_price!r} "
            "exceeds the representable precision.",
            price=alternative_price,
        ) from None
    return PriceDelta(
        percentage=int(percentage),
        is_more_expensive=alt > orig,
        amount=amount,
    )
