"""Log-scale target transforms used by the counterfactual models."""

from __future__ import annotations

import numpy as np
import pandas as pd

from tourism_impact.errors import ContractViolation


def to_log_scale(values: pd.Series | np.ndarray, *, key: str = "value") -> np.ndarray:
    """Return natural logs of strictly positive values."""

    array = np.asarray(pd.to_numeric(pd.Series(values), errors="coerce"), dtype=float)
    if np.isnan(array).any():
        raise ContractViolation(
            "invalid_value",
            key=key,
            detail="log transform requires numeric, non-null values",
        )
    if (array <= 0).any():
        raise ContractViolation(
            "invalid_value",
            key=key,
            detail="log transform requires strictly positive values",
        )
    return np.log(array)


def to_natural_scale(log_values: np.ndarray) -> np.ndarray:
    """Exponentiate log-scale values or sample matrices element-wise."""

    return np.exp(np.asarray(log_values, dtype=float))
