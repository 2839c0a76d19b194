"""Shared contract error types."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import pandas as pd


@dataclass(frozen=True)
class ContractContext:
    """Structured context carried by contract violations."""

    reason_code: str
    month: Optional[pd.Period]
    key: str
    detail: str


class ContractViolation(ValueError):
    """Raised when a hard data, model or configuration contract fails."""

    def __init__(
        self,
        reason_code: str,
        *,
        month: object | None = None,
        key: str = "<none>",
        detail: str = "",
    ) -> None:
        resolved_month: Optional[pd.Period]
        if month is None:
            resolved_month = None
        elif isinstance(month, pd.Period):
            resolved_month = month.asfreq("M")
        else:
            resolved_month = pd.Timestamp(month).to_period("M")

        self.context = ContractContext(
            reason_code=reason_code,
            month=resolved_month,
            key=key,
            detail=detail,
        )
        month_str = "<none>" if resolved_month is None else str(resolved_month)
        message = (
            f"reason_code={reason_code}; month={month_str}; key={key}; detail={detail}"
        )
        super().__init__(message)
