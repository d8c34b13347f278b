# app/utils/currency.py
"""
Currency minor-unit handling.
Amounts are Decimal throughout; rounding happens once, on the final amount.
"""

from decimal import Decimal, ROUND_HALF_UP

# ISO 4217 exponents that differ from the default of 2.
# ALL (Albanian lek) is priced without subdivision in this domain.
_MINOR_UNITS = {
    "ALL": 0,
    "BIF": 0, "CLP": 0, "DJF": 0, "GNF": 0, "ISK": 0, "JPY": 0, "KMF": 0,
    "KRW": 0, "PYG": 0, "RWF": 0, "UGX": 0, "VND": 0, "VUV": 0, "XAF": 0,
    "XOF": 0, "XPF": 0,
    "BHD": 3, "IQD": 3, "JOD": 3, "KWD": 3, "LYD": 3, "OMR": 3, "TND": 3,
}
_DEFAULT_MINOR_UNITS = 2


def minor_units(currency: str) -> int:
    """Number of decimal places used for amounts in `currency`."""
    return _MINOR_UNITS.get(currency.upper(), _DEFAULT_MINOR_UNITS)


def round_amount(amount: Decimal, currency: str) -> Decimal:
    """Round to the currency's minor-unit precision (half up)."""
    exponent = Decimal(1).scaleb(-minor_units(currency))
    return Decimal(amount).quantize(exponent, rounding=ROUND_HALF_UP)


def format_amount(amount: Decimal, currency: str) -> str:
    return f"{round_amount(amount, currency)} {currency.upper()}"
