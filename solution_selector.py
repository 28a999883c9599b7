"""
Solution Selector: picks the economically admissible branch.

A branch is admissible when its price of good Y is provably positive for every
positive endowment k. When several branches pass, the one that is also
provably positive in px, z_alpha and z_beta is preferred. When none passes,
the first branch is used, an AmbiguousPositivity warning is issued, and the
branch is checked numerically at a few endowment values before it is handed
on.
"""

import warnings
from typing import Dict, FrozenSet, NamedTuple, Optional, Sequence, Tuple

import numpy as np
import sympy

import walras_config as cfg
from algebra_engine import AlgebraEngine, SolutionBranch, SympyEngine
from walras_errors import (AmbiguousPositivity, EquilibriumWarning,
                           InadmissibleSolution, NoSolutionFound)

PRIMARY_UNKNOWN = "py"
SECONDARY_UNKNOWNS = ("px", "z_alpha", "z_beta")


class SelectedSolution(NamedTuple):
    values: Dict[sympy.Symbol, sympy.Expr]
    branch_index: int
    conditions: FrozenSet[sympy.Basic] = frozenset()
    fallback: bool = False
    warnings: Tuple[EquilibriumWarning, ...] = ()

    def value(self, name):
        """Expression assigned to the unknown called `name`."""
        for sym, expr in self.values.items():
            if str(sym) == name:
                return expr
        raise KeyError(f"No unknown named '{name}' in the selected solution.")

    @property
    def px(self):
        return self.value("px")

    @property
    def py(self):
        return self.value("py")

    @property
    def z_alpha(self):
        return self.value("z_alpha")

    @property
    def z_beta(self):
        return self.value("z_beta")


def _branch_value(branch, name):
    for sym, expr in branch.values.items():
        if str(sym) == name:
            return expr
    raise KeyError(f"Branch has no value for '{name}'.")


def _provably_positive(expr, engine, conditions=()):
    relation = sympy.StrictGreaterThan(expr, 0, evaluate=False)
    return engine.is_always_true(relation, assumptions=tuple(conditions)) is True


def is_admissible(branch: SolutionBranch, engine: AlgebraEngine) -> bool:
    """True when the branch's py is provably positive under its side conditions."""
    return _provably_positive(_branch_value(branch, PRIMARY_UNKNOWN), engine, branch.conditions)


def passes_secondary_checks(branch: SolutionBranch, engine: AlgebraEngine) -> bool:
    return all(_provably_positive(_branch_value(branch, name), engine, branch.conditions)
               for name in SECONDARY_UNKNOWNS if any(str(s) == name for s in branch.values))


def sanity_check_branch(branch: SolutionBranch, k: sympy.Symbol,
                        sample_k: Sequence[float] = cfg.SANITY_CHECK_K, verbose=cfg.VERBOSE):
    """
    Evaluate every unknown of `branch` at each sample endowment.

    Raises:
        InadmissibleSolution: a value is complex, non-finite, non-positive
            or still symbolic after k is bound
    """
    for k_value in sample_k:
        if k_value <= 0:
            raise ValueError(f"Sample endowment values must be positive, got {k_value}.")
        for sym, expr in branch.values.items():
            bound = sympy.sympify(expr).subs(k, k_value)
            try:
                number = complex(bound.evalf())
            except TypeError as e:
                raise InadmissibleSolution(
                    f"{sym} = {expr} cannot be evaluated numerically at k = {k_value}.",
                    unknown=str(sym), k_value=k_value, value=bound) from e
            if abs(number.imag) > 1e-12 or not np.isfinite(number.real) or number.real <= 0:
                raise InadmissibleSolution(
                    f"Fallback branch is inadmissible: {sym} evaluates to {number} at k = {k_value}.",
                    unknown=str(sym), k_value=k_value, value=number)
            if verbose: print(f"  k = {k_value}: {sym} = {number.real:.6g}")


def select_solution(branches: Sequence[SolutionBranch],
                    k: sympy.Symbol,
                    engine: Optional[AlgebraEngine] = None,
                    sanity_check: bool = True,
                    sample_k: Sequence[float] = cfg.SANITY_CHECK_K,
                    verbose: bool = cfg.VERBOSE) -> SelectedSolution:
    """
    Choose one branch out of those returned by the solver.

    Args:
        branches: solver output, in enumeration order
        k: the endowment symbol
        engine: algebra engine answering the positivity queries
        sanity_check: evaluate a fallback branch numerically at `sample_k`
        sample_k: positive endowment values used by the sanity check
        verbose: print progress

    Returns:
        SelectedSolution; `fallback` is True and `warnings` holds an
        AmbiguousPositivity instance when no branch was provably admissible.

    Raises:
        NoSolutionFound: `branches` is empty
        InadmissibleSolution: the fallback branch fails the sanity check
    """
    engine = SympyEngine() if engine is None else engine
    branches = list(branches)
    if not branches:
        raise NoSolutionFound("No solution branches to select from.")

    if verbose: print("\n--- Selecting Admissible Solution ---")
    admissible = [i for i, branch in enumerate(branches) if is_admissible(branch, engine)]
    if verbose: print(f"Branches provably positive in {PRIMARY_UNKNOWN}: {admissible}")

    if admissible:
        chosen = admissible[0]
        if len(admissible) > 1:
            for i in admissible:
                if passes_secondary_checks(branches[i], engine):
                    chosen = i
                    break
        branch = branches[chosen]
        if verbose: print(f"Selected branch {chosen}.")
        return SelectedSolution(branch.values, chosen, branch.conditions)

    warning = AmbiguousPositivity(
        f"None of the {len(branches)} branch(es) is provably positive in {PRIMARY_UNKNOWN}; "
        f"falling back to the first branch, which may be economically invalid.")
    warnings.warn(warning, stacklevel=2)
    branch = branches[0]
    if sanity_check:
        if verbose: print(f"Checking fallback branch numerically at k = {list(sample_k)}")
        sanity_check_branch(branch, k, sample_k, verbose=verbose)
    return SelectedSolution(branch.values, 0, branch.conditions, fallback=True, warnings=(warning,))
