"""
Nelder-Mead Parameter Fitting
=============================

Fit the seven kinetic parameters (n, k_a, k_n, k_e, k_am, k_nm, k_em) to
aggregate-mass time courses with a derivative-free simplex search.

Workflow:
1. Load experimental data (one assay, or several for a global fit)
2. Normalise each assay by its final value
3. Seed the simplex with guessed parameter sets
4. Run a fixed number of reflect/expand/contract/shrink iterations
5. Export the best parameter set for simulation runs

Each iteration replaces only the worst vertex, except a shrink, which moves
every vertex but the best halfway towards it. The best error in the simplex
therefore never increases. There is no convergence test: the iteration
budget is always spent.
"""

from typing import Callable, List, Optional, Sequence

import numpy as np
from tqdm import tqdm

from .models import (
    ConfigurationError,
    ExperimentConstants,
    FitResult,
    ParameterSet,
    SimplexVertex,
    TimeSeries,
)
from .comparison import compute_error, compute_global_error, normalize_experimental
from .integrator import generate_mass

Objective = Callable[[ParameterSet], float]


# =============================================================================
# SIMPLEX GEOMETRY
# =============================================================================

def centroid(vertices: Sequence[SimplexVertex]) -> ParameterSet:
    """Mean parameter set of the given vertices."""
    vectors = np.array([v.params.to_vector() for v in vertices])
    return ParameterSet.from_vector(vectors.mean(axis=0))


def reflect(center: ParameterSet, worst: ParameterSet) -> ParameterSet:
    return center + (center - worst)


def expand(center: ParameterSet, reflection: ParameterSet) -> ParameterSet:
    return center + (reflection - center) * 2


def contract(center: ParameterSet, point: ParameterSet) -> ParameterSet:
    """Halfway from the centroid towards `point` (inside: worst, outside: reflection)."""
    return center + (point - center) * 0.5


def shrink(best: ParameterSet, point: ParameterSet) -> ParameterSet:
    return best + (point - best) * 0.5


# =============================================================================
# OPTIMIZER
# =============================================================================

def _print_simplex(simplex: List[SimplexVertex]) -> None:
    print("Ordered guesses")
    for i, vertex in enumerate(simplex):
        print(f"  {i}: {vertex.params}  MSE={vertex.error:.6e}")


def nelder_mead_step(simplex: List[SimplexVertex], objective: Objective,
                     verbose: bool = False) -> str:
    """
    One Nelder-Mead iteration, updating `simplex` in place.

    The simplex is sorted by error first. All candidate errors are computed
    before the simplex is modified.

    Returns:
        Name of the transition taken: 'reflect', 'expand', 'contract_inside',
        'contract_outside' or 'shrink'
    """
    simplex.sort(key=lambda v: v.error)
    best, worst = simplex[0], simplex[-1]
    if verbose:
        _print_simplex(simplex)

    center = centroid(simplex[:-1])
    reflection = reflect(center, worst.params)
    refl_error = objective(reflection)
    if verbose:
        print(f"Centroid   {center}")
        print(f"Reflection {reflection}  MSE={refl_error:.6e}")

    if best.error < refl_error < worst.error:
        simplex[-1] = SimplexVertex(reflection, refl_error)
        return "reflect"

    if refl_error <= best.error:
        expansion = expand(center, reflection)
        expa_error = objective(expansion)
        if verbose:
            print(f"Expansion  {expansion}  MSE={expa_error:.6e}")
        if expa_error < refl_error:
            simplex[-1] = SimplexVertex(expansion, expa_error)
            return "expand"
        simplex[-1] = SimplexVertex(reflection, refl_error)
        return "reflect"

    inside = contract(center, worst.params)
    inside_error = objective(inside)
    outside = contract(center, reflection)
    outside_error = objective(outside)
    if verbose:
        print(f"Contraction (inside)  {inside}  MSE={inside_error:.6e}")
        print(f"Contraction (outside) {outside}  MSE={outside_error:.6e}")

    if inside_error < worst.error:
        if inside_error < outside_error:
            simplex[-1] = SimplexVertex(inside, inside_error)
            return "contract_inside"
        simplex[-1] = SimplexVertex(outside, outside_error)
        return "contract_outside"
    if outside_error < worst.error:
        simplex[-1] = SimplexVertex(outside, outside_error)
        return "contract_outside"

    shrunk = [shrink(best.params, v.params) for v in simplex[1:]]
    shrunk_errors = [objective(p) for p in shrunk]
    if verbose:
        print("Shrink")
    simplex[1:] = [SimplexVertex(p, e) for p, e in zip(shrunk, shrunk_errors)]
    return "shrink"


def nelder_mead(objective: Objective,
                guesses: Sequence[ParameterSet],
                iterations: int = 100,
                verbose: bool = False,
                show_progress: bool = False,
                callback: Optional[Callable[[int, List[SimplexVertex]], None]] = None) -> FitResult:
    """
    Minimise `objective` over parameter sets.

    Args:
        objective: maps a ParameterSet to its error (inf for infeasible sets)
        guesses: initial simplex vertices; 8 spans the full parameter space
        iterations: fixed iteration budget
        verbose: print the simplex and every candidate
        show_progress: show a tqdm bar over iterations
        callback: called as callback(iteration, simplex) after each iteration

    Returns:
        FitResult with the best vertex, the final sorted simplex and the best
        error after each iteration
    """
    if len(guesses) < 2:
        raise ConfigurationError("Nelder-Mead needs at least two initial guesses")
    if iterations < 0:
        raise ConfigurationError("Iteration count must be non-negative")

    simplex = [SimplexVertex(params, objective(params)) for params in guesses]
    if verbose:
        print("Params have been read and their errors calculated")

    history = []
    iterator = tqdm(range(iterations), desc="Nelder-Mead") if show_progress else range(iterations)
    for i in iterator:
        nelder_mead_step(simplex, objective, verbose=verbose)
        history.append(min(v.error for v in simplex))
        if callback is not None:
            callback(i, simplex)

    simplex.sort(key=lambda v: v.error)
    if verbose:
        print("Final guesses")
        _print_simplex(simplex)

    return FitResult(
        best=simplex[0].params,
        error=simplex[0].error,
        simplex=simplex,
        history=history,
        iterations=iterations
    )


# =============================================================================
# FITTING FUNCTIONS
# =============================================================================

def _mass_simulator(use_numba: bool):
    if use_numba:
        from .integrator_fast import generate_mass_numba
        return generate_mass_numba
    return generate_mass


def fit_single(real_data: TimeSeries,
               guesses: Sequence[ParameterSet],
               constants: ExperimentConstants,
               iterations: int = 100,
               nm: Optional[float] = None,
               use_numba: bool = False,
               verbose: bool = False,
               show_progress: bool = False) -> FitResult:
    """
    Fit one experimental aggregate-mass curve.

    Args:
        real_data: experimental (time, value) series, not yet normalised
        guesses: initial simplex
        constants: initial conditions and integration settings
        iterations: iteration budget
        nm: fixed order of the slow nucleation step (None: equal to n)
        use_numba: evaluate candidates with the compiled kernel
    """
    normalized = normalize_experimental(real_data)
    simulate = _mass_simulator(use_numba)

    def objective(params):
        return compute_error(params, constants, normalized, nm=nm, simulate=simulate)

    return nelder_mead(objective, guesses, iterations=iterations,
                       verbose=verbose, show_progress=show_progress)


def fit_global(datasets: Sequence[TimeSeries],
               guesses: Sequence[ParameterSet],
               constants_list: Sequence[ExperimentConstants],
               iterations: int = 100,
               nm: Optional[float] = None,
               use_numba: bool = False,
               verbose: bool = False,
               show_progress: bool = False) -> FitResult:
    """
    Fit one parameter set to several experiments at once.

    The objective is the unweighted mean of the per-dataset errors, each
    dataset simulated under its own initial conditions and settings.
    """
    if len(datasets) != len(constants_list):
        raise ConfigurationError(
            f"Got {len(datasets)} datasets for {len(constants_list)} experiment configurations"
        )
    normalized = [normalize_experimental(data) for data in datasets]
    simulate = _mass_simulator(use_numba)

    def objective(params):
        return compute_global_error(params, constants_list, normalized, nm=nm, simulate=simulate)

    return nelder_mead(objective, guesses, iterations=iterations,
                       verbose=verbose, show_progress=show_progress)
