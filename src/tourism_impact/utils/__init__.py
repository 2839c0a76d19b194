"""Shared utility helpers for month-keyed runtime behavior."""

from tourism_impact.utils.calendar import (
    missing_months,
    month_from_parts,
    month_number,
    month_range,
    parse_month,
    shift_month,
)

__all__ = [
    "missing_months",
    "month_from_parts",
    "month_number",
    "month_range",
    "parse_month",
    "shift_month",
]
