"""
aggkin - Protein Aggregation Kinetics
=====================================

Deterministic simulation of protein aggregation and fitting of its rate
constants to aggregate-mass time courses.

The reaction scheme:
    iM ⇌ aM                (activation, k_a / k_am)
    n aM ⇌ A_1             (nucleation, k_n / k_nm)
    aM + A_i ⇌ A_(i+1)     (elongation, k_e / k_em)

where iM = inactive monomer, aM = active monomer, A_i = aggregate of
size class i

Components:
1. Forward-Euler integration with a state vector that grows with the
   largest aggregate carrying mass
2. Comparison of simulated and experimental curves (normalised MSE)
3. Nelder-Mead fitting of one assay, or of several assays globally
"""

__version__ = "0.1.0"

# Data structures
from .models import (
    ParameterSet,
    Metaparameters,
    ExperimentConstants,
    TimeSeries,
    SimplexVertex,
    FitResult,
    RunConfig,
    FitConfig,
    ConfigurationError,
    DataFormatError,
    NumericalDivergenceWarning,
)

# Reaction network
from .reaction import ReactionModel, aggregate_mass, total_monomer_equivalents

# Integration
from .integrator import integrate, generate_concentrations, generate_mass, absorbance_series

# Fast implementation (Numba-accelerated)
from .integrator_fast import integrate_mass_numba, generate_mass_numba

# Curve comparison
from .comparison import (
    binary_search,
    interpolate_value,
    normalize_series,
    normalize_experimental,
    mse,
    compute_error,
    compute_global_error,
)

# Fitting
from .nelder_mead import nelder_mead, nelder_mead_step, fit_single, fit_global

# Analysis
from .analysis import nucleation_equilibrium, fit_summary

# Files
from .datafiles import (
    load_experimental_data,
    load_multi_assay,
    load_run_config,
    load_fit_config,
    load_guesses,
    write_series_csv,
    read_series_csv,
    write_fit_result,
    export_parameters,
)

# Parameter sweeps
from .sweep import parameter_grid, run_sweep

# Plotting functions
from .plotting import plot_concentrations, plot_fit, plot_simplex_history

__all__ = [
    # Version
    "__version__",
    # Data structures
    "ParameterSet",
    "Metaparameters",
    "ExperimentConstants",
    "TimeSeries",
    "SimplexVertex",
    "FitResult",
    "RunConfig",
    "FitConfig",
    "ConfigurationError",
    "DataFormatError",
    "NumericalDivergenceWarning",
    # Reaction network
    "ReactionModel",
    "aggregate_mass",
    "total_monomer_equivalents",
    # Integration
    "integrate",
    "generate_concentrations",
    "generate_mass",
    "absorbance_series",
    # Fast/Accelerated versions (Numba)
    "integrate_mass_numba",
    "generate_mass_numba",
    # Comparison
    "binary_search",
    "interpolate_value",
    "normalize_series",
    "normalize_experimental",
    "mse",
    "compute_error",
    "compute_global_error",
    # Fitting
    "nelder_mead",
    "nelder_mead_step",
    "fit_single",
    "fit_global",
    # Analysis
    "nucleation_equilibrium",
    "fit_summary",
    # Files
    "load_experimental_data",
    "load_multi_assay",
    "load_run_config",
    "load_fit_config",
    "load_guesses",
    "write_series_csv",
    "read_series_csv",
    "write_fit_result",
    "export_parameters",
    # Sweeps
    "parameter_grid",
    "run_sweep",
    # Plotting
    "plot_concentrations",
    "plot_fit",
    "plot_simplex_history",
]
