"""Display currency conversion (presentation only)."""

from compound_ledger.services.currency.converter import (
    SUPPORTED_CURRENCIES,
    CurrencyInfo,
    display_name,
    exchange_rate_string,
    format_amount,
    from_usd,
    get_currency_info,
    is_supported,
    supported_currency_codes,
    to_usd,
)

__all__ = [
    "SUPPORTED_CURRENCIES",
    "CurrencyInfo",
    "display_name",
    "exchange_rate_string",
    "format_amount",
    "from_usd",
    "get_currency_info",
    "is_supported",
    "supported_currency_codes",
    "to_usd",
]
