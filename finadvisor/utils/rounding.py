"""Numeric rounding helpers for result boundaries"""

import math


def round_half_up(value: float, places: int = 0) -> float:
    """Round half away from negative infinity, e.g. 2.5 -> 3, -2.5 -> -2"""
    factor = 10 ** places
    return math.floor(value * factor + 0.5) / factor


def round_currency(value: float) -> float:
    return round_half_up(value, 2)


def round_percentage(value: float) -> float:
    return round_half_up(value, 1)


def format_gbp(amount: float) -> str:
    """Format an amount as pounds with thousands separators"""
    if float(amount).is_integer():
        return f"£{amount:,.0f}"
    return f"£{amount:,.2f}"
