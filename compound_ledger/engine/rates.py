"""
Rate Model

Converts a plan's nominal annual return into the daily compounding rate
such that compounding it for 365 days reproduces the annual return:

    daily_rate = (1 + annual_percent / 100) ** (1 / 365) - 1

A separate, constant daily rate is used by the legacy fixed-rate
projection (see projection.fixed_daily_returns).
"""

DAYS_PER_YEAR = 365

# Legacy fixed daily rate, 0.05479% per day.
FIXED_DAILY_RATE_PERCENT = 0.05479
FIXED_DAILY_RATE = FIXED_DAILY_RATE_PERCENT / 100


def daily_rate(annual_percent: float) -> float:
    """
    Daily compound rate as a decimal (20.0 -> ~0.0004996).
    
    Raises:
        ValueError: for negative rates. Catalog plans are validated
            positive when configured, so this only fires on misuse.
    """
    if annual_percent < 0:
        raise ValueError(f"Annual rate must be non-negative, got {annual_percent}")
    if annual_percent == 0:
        return 0.0
    return (1 + annual_percent / 100) ** (1 / DAYS_PER_YEAR) - 1


def format_daily_rate(rate: float) -> str:
    """Format a decimal daily rate as a percentage string ("0.05479%")."""
    return f"{rate * 100:.5f}%"
