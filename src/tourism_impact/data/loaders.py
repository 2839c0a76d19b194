"""CSV loaders for the arrivals and card-transaction sources."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Mapping

import pandas as pd

from tourism_impact.data.validators import ensure_monthly_series, require_columns
from tourism_impact.errors import ContractViolation
from tourism_impact.utils.calendar import month_from_parts

logger = logging.getLogger(__name__)

_DEFAULT_ARRIVAL_COLUMNS: dict[str, str] = {
    "year": "year",
    "month": "month",
    "value": "trips",
}


def _read_csv(source: str | Path | pd.DataFrame, *, key: str) -> pd.DataFrame:
    if isinstance(source, pd.DataFrame):
        return source.copy()
    path = Path(source)
    if not path.exists():
        raise ContractViolation(
            "missing_source_file",
            key=str(path),
            detail=f"{key} source file does not exist",
        )
    return pd.read_csv(path, dtype=str)


def _parse_number(values: pd.Series) -> pd.Series:
    cleaned = (
        values.astype(str)
        .str.replace(",", "", regex=False)
        .str.replace(" ", "", regex=False)
        .str.strip()
    )
    return pd.to_numeric(cleaned, errors="coerce")


def load_arrivals(
    source: str | Path | pd.DataFrame,
    *,
    columns: Mapping[str, str] | None = None,
) -> pd.DataFrame:
    """Load monthly arrivals (year, month, trips) into a ``month``/``value`` frame.

    Year cells left blank after the first month of a year are forward-filled,
    matching the layout of the published arrivals tables. Rows with an empty
    value cell (months not yet published) are dropped before validation.
    """

    names = {**_DEFAULT_ARRIVAL_COLUMNS, **dict(columns or {})}
    raw = _read_csv(source, key="arrivals")
    require_columns(raw, (names["year"], names["month"], names["value"]), key="arrivals")

    frame = raw[[names["year"], names["month"], names["value"]]].copy()
    years = frame[names["year"]]
    frame[names["year"]] = years.where(years.astype(str).str.strip().ne("")).ffill()
    frame = frame.dropna(subset=[names["month"]])
    values = frame[names["value"]]
    frame = frame[values.notna() & values.astype(str).str.strip().ne("")].copy()
    frame["month"] = [
        month_from_parts(year, month, key="arrivals.month")
        for year, month in zip(frame[names["year"]], frame[names["month"]])
    ]
    frame["value"] = _parse_number(frame[names["value"]])
    series = ensure_monthly_series(frame, key="arrivals")
    logger.info(
        "loaded %d arrival months from %s to %s",
        len(series),
        series["month"].iloc[0].strftime("%Y-%m"),
        series["month"].iloc[-1].strftime("%Y-%m"),
    )
    return series


def load_transactions(
    source: str | Path | pd.DataFrame,
    *,
    month_column: str = "month",
) -> pd.DataFrame:
    """Load the wide month-by-year transactions table into a long monthly series.

    Every column other than ``month_column`` whose header is a four-digit year
    is treated as that year's monthly volumes. Empty cells (months not yet
    published) are dropped before validation.
    """

    raw = _read_csv(source, key="transactions")
    require_columns(raw, (month_column,), key="transactions")
    year_columns = [
        column
        for column in raw.columns
        if column != month_column and str(column).strip().isdigit()
    ]
    if not year_columns:
        raise ContractViolation(
            "missing_column",
            key="transactions",
            detail="transactions table must have at least one year column",
        )

    long = raw.melt(
        id_vars=[month_column],
        value_vars=year_columns,
        var_name="year",
        value_name="raw_value",
    )
    long["value"] = _parse_number(long["raw_value"])
    long = long[long["value"].notna() & long[month_column].notna()].copy()
    long["month"] = [
        month_from_parts(year, month, key="transactions.month")
        for year, month in zip(long["year"], long[month_column])
    ]
    series = ensure_monthly_series(long, key="transactions")
    logger.info(
        "loaded %d transaction months across %d year columns",
        len(series),
        len(year_columns),
    )
    return series


def join_monthly_series(
    arrivals: pd.DataFrame,
    transactions: pd.DataFrame,
) -> pd.DataFrame:
    """Inner-join arrivals and transaction volumes on month."""

    left = ensure_monthly_series(arrivals, key="arrivals").rename(
        columns={"value": "arrivals"}
    )
    right = ensure_monthly_series(transactions, key="transactions").rename(
        columns={"value": "volume"}
    )
    joined = left.merge(right, on="month", how="inner")
    if joined.empty:
        raise ContractViolation(
            "insufficient_training_data",
            key="joined_series",
            detail="arrivals and transactions share no months",
        )
    return joined.sort_values("month").reset_index(drop=True)
