"""
Display currency conversion.

USD is the system of record. Everything here is a pure view transform
used by presentation code; the ledger itself never converts.

Rates are expressed as "1 USD = rate_to_usd units of the currency".
"""

from typing import Optional

import structlog
from pydantic import BaseModel, Field


logger = structlog.get_logger(__name__)


class CurrencyInfo(BaseModel):
    """A supported display currency."""
    
    code: str = Field(..., min_length=3, max_length=3)
    name: str
    symbol: str
    rate_to_usd: float = Field(..., gt=0)
    decimal_places: int = Field(default=2, ge=0, le=4)


def _currency(code: str, name: str, symbol: str, rate: float, decimals: int = 2) -> CurrencyInfo:
    return CurrencyInfo(code=code, name=name, symbol=symbol, rate_to_usd=rate, decimal_places=decimals)


SUPPORTED_CURRENCIES: dict[str, CurrencyInfo] = {
    info.code: info
    for info in (
        _currency("USD", "US Dollar", "$", 1.0),
        _currency("MXN", "Mexican Peso", "Mex$", 17.5),
        _currency("EUR", "Euro", "€", 0.92),
        _currency("GBP", "British Pound", "£", 0.79),
        _currency("CAD", "Canadian Dollar", "C$", 1.35),
        _currency("BRL", "Brazilian Real", "R$", 5.0),
        _currency("ARS", "Argentine Peso", "AR$", 350.0),
        _currency("COP", "Colombian Peso", "COL$", 3800.0, 0),
        _currency("PEN", "Peruvian Sol", "S/", 3.7),
        _currency("CLP", "Chilean Peso", "CLP$", 950.0, 0),
        _currency("VES", "Venezuelan Bolívar", "Bs.", 35.0),
        _currency("JPY", "Japanese Yen", "¥", 150.0, 0),
        _currency("CNY", "Chinese Yuan", "¥", 7.2),
        _currency("INR", "Indian Rupee", "₹", 83.0),
        _currency("AUD", "Australian Dollar", "A$", 1.5),
        _currency("NZD", "New Zealand Dollar", "NZ$", 1.6),
        _currency("SGD", "Singapore Dollar", "S$", 1.3),
    )
}


def get_currency_info(code: str) -> Optional[CurrencyInfo]:
    return SUPPORTED_CURRENCIES.get(code)


def is_supported(code: str) -> bool:
    return code in SUPPORTED_CURRENCIES


def supported_currency_codes() -> list[str]:
    return list(SUPPORTED_CURRENCIES)


def from_usd(amount_usd: float, code: str) -> float:
    """Convert a USD amount for display. Unsupported codes return the USD amount."""
    info = get_currency_info(code)
    if info is None:
        logger.warning("currency_not_supported", currency=code, available=supported_currency_codes())
        return amount_usd
    return amount_usd * info.rate_to_usd


def to_usd(amount: float, code: str) -> float:
    """Convert user input in a display currency to USD. Unsupported codes pass through."""
    info = get_currency_info(code)
    if info is None:
        logger.warning("currency_not_supported", currency=code, available=supported_currency_codes())
        return amount
    return amount / info.rate_to_usd


def format_amount(amount: float, code: str, include_symbol: bool = True) -> str:
    """
    Format with the currency's symbol and decimal places.
    
    Unknown codes fall back to USD formatting.
    """
    info = get_currency_info(code) or SUPPORTED_CURRENCIES["USD"]
    formatted = f"{abs(amount):,.{info.decimal_places}f}"
    sign = "-" if amount < 0 else ""
    if not include_symbol:
        return f"{sign}{formatted}"
    return f"{sign}{info.symbol}{formatted}"


def exchange_rate_string(from_code: str, to_code: str) -> str:
    """e.g. "1 USD = Mex$17.50"."""
    if not (is_supported(from_code) and is_supported(to_code)):
        return "Exchange rate unavailable"
    one_in_usd = to_usd(1, from_code)
    return f"1 {from_code} = {format_amount(from_usd(one_in_usd, to_code), to_code)}"


def display_name(code: str) -> str:
    """e.g. "USD ($)". Unknown codes are returned as-is."""
    info = get_currency_info(code)
    if info is None:
        return code
    return f"{info.code} ({info.symbol})"
