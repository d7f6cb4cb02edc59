"""
Analysis helpers for simulated and fitted aggregation curves.
"""

from typing import Optional, Tuple

import numpy as np
from scipy.optimize import brentq

from .models import ConfigurationError, ParameterSet, TimeSeries
from .comparison import interpolate_value


def nucleation_equilibrium(params: ParameterSet, total: float,
                           nm: Optional[float] = None) -> Tuple[float, float]:
    """
    Equilibrium of the nucleation step alone (activation and elongation off).

    At equilibrium:
        k_n [aM]^nm = k_nm [A_1]
    with monomer conservation:
        [aM] + n [A_1] = total

    Substituting [A_1] = (total - [aM]) / n gives a function of [aM] that is
    monotone on [0, total], solved with Brent's method.

    Returns:
        (aM_eq, A1_eq)
    """
    if total < 0:
        raise ConfigurationError("Total monomer concentration must be non-negative")
    n = params.n
    if n <= 0:
        raise ConfigurationError("Nucleation order must be positive for an equilibrium")
    nm = n if nm is None else nm
    k_n = params.forward_rates[1]
    k_nm = params.backward_rates[1]

    if total == 0:
        return 0.0, 0.0
    if k_n == 0:
        return total, 0.0
    if k_nm == 0:
        return 0.0, total / n

    def balance(a_m):
        return k_n * a_m ** nm - k_nm * (total - a_m) / n

    a_m = brentq(balance, 0.0, total)
    return a_m, (total - a_m) / n


def fit_summary(real_data: TimeSeries, modeled_data: TimeSeries) -> dict:
    """
    Goodness of fit of a (normalised) model curve to (normalised) data.

    Returns dictionary with:
        - mse, rmse
        - r_squared (coefficient of determination)
        - residuals (data minus model at each experimental time)
    """
    y_exp = real_data.scalar_values()
    y_pred = np.array([interpolate_value(modeled_data, t) for t in real_data.times])
    residuals = y_exp - y_pred
    ss_res = np.sum(residuals ** 2)
    ss_tot = np.sum((y_exp - np.mean(y_exp)) ** 2)

    return {
        'mse': ss_res / len(y_exp),
        'rmse': np.sqrt(ss_res / len(y_exp)),
        'r_squared': 1 - ss_res / ss_tot if ss_tot > 0 else np.nan,
        'residuals': residuals,
    }
