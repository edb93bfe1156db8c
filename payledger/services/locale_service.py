"""Locale service for currency and date formatting.

Uses babel with the locale from the LOCALE setting (default: es_MX).
Amounts in the engine are integer centavos; this module is the only place
they are turned into display currency.

Example:
    >>> from payledger.services.locale_service import format_amount
    >>> format_amount(123456)
    '$1,234.56'
"""

import logging
from datetime import date
from decimal import Decimal

from babel import Locale, UnknownLocaleError
from babel.dates import format_date as babel_format_date
from babel.numbers import format_currency as babel_format_currency
from babel.numbers import format_decimal as babel_format_decimal
from babel.numbers import get_territory_currencies

from payledger.services.config import get_settings

logger = logging.getLogger(__name__)

DEFAULT_LOCALE = "es_MX"
DEFAULT_CURRENCY = "MXN"

MINOR_UNITS_PER_MAJOR = Decimal(100)


def _get_locale() -> str:
    """Get locale from settings with validation and fallback."""
    locale_str = get_settings().locale
    try:
        Locale.parse(locale_str)
        return locale_str
    except (UnknownLocaleError, ValueError) as e:
        logger.warning(f"Invalid LOCALE '{locale_str}': {e}. Falling back to '{DEFAULT_LOCALE}'")
        return DEFAULT_LOCALE


def _get_currency_from_locale(locale_str: str) -> str:
    """Derive currency code from locale territory."""
    try:
        territory = Locale.parse(locale_str).territory
        if territory:
            currencies = get_territory_currencies(territory)
            if currencies:
                return currencies[0]
    except (UnknownLocaleError, ValueError) as e:
        logger.warning(f"Could not derive currency from locale '{locale_str}': {e}")
    return DEFAULT_CURRENCY


# Module-level constants (computed once at import)
LOCALE = _get_locale()
CURRENCY = _get_currency_from_locale(LOCALE)


def to_major_units(amount: int) -> Decimal:
    """Convert centavos to a Decimal amount in pesos."""
    return Decimal(amount) / MINOR_UNITS_PER_MAJOR


def format_amount(amount: int, include_symbol: bool = True) -> str:
    """Format an amount in centavos according to locale.

    Args:
        amount: Amount in minor units
        include_symbol: Whether to include currency symbol (default True)

    Returns:
        Formatted currency string
    """
    major = to_major_units(amount)
    if include_symbol:
        return babel_format_currency(major, CURRENCY, locale=LOCALE)
    return babel_format_decimal(major, format="#,##0.00", locale=LOCALE)


def format_signed_amount(amount: int) -> str:
    """Format with an explicit sign, for credit ledger movements."""
    sign = "+" if amount >= 0 else "-"
    return f"{sign}{format_amount(abs(amount))}"


def format_local_date(value: date, format: str = "medium") -> str:
    return babel_format_date(value, format=format, locale=LOCALE)


def get_locale_info() -> dict:
    """Get current locale configuration for debugging/display."""
    return {"locale": LOCALE, "currency": CURRENCY}


__all__ = [
    "CURRENCY",
    "LOCALE",
    "format_amount",
    "format_local_date",
    "format_signed_amount",
    "get_locale_info",
    "to_major_units",
]
