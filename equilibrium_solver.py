"""
Equilibrium Solver: hands the model's equation system to the algebra engine
and collects every solution branch it returns.
"""

from typing import Optional, Tuple

import walras_config as cfg
from algebra_engine import AlgebraEngine, SolutionBranch, SympyEngine
from model_builder import EconomyModel, check_system
from walras_errors import NoSolutionFound


def solve_equilibrium(model: EconomyModel,
                      engine: Optional[AlgebraEngine] = None,
                      timeout: Optional[float] = cfg.SOLVER_TIMEOUT,
                      verbose: bool = cfg.VERBOSE) -> Tuple[SolutionBranch, ...]:
    """
    Solve the model for [px, py, z_alpha, z_beta] as functions of k.

    Args:
        model: output of build_model()
        engine: algebra engine, SympyEngine() when omitted
        timeout: seconds allowed for the engine call (None = unbounded)
        verbose: print progress

    Returns:
        Tuple of SolutionBranch in the engine's enumeration order.

    Raises:
        ModelSpecificationError: the system is not square
        NoSolutionFound: the engine returned no branch
        SolverTimeout, AlgebraEngineError: propagated from the engine
    """
    engine = SympyEngine(verbose=verbose) if engine is None else engine
    check_system(model.equations, model.unknowns)

    if verbose: print("\n--- Solving Equilibrium System ---")
    branches = tuple(engine.solve(model.equations, model.unknowns,
                                  with_conditions=True, timeout=timeout))
    if not branches:
        raise NoSolutionFound(
            "The algebra engine returned no solution for the equilibrium system; "
            "the economy has no closed-form equilibrium under these functional forms.")

    if verbose:
        for i, branch in enumerate(branches):
            assignment = ", ".join(f"{u} = {branch.values[u]}" for u in model.unknowns)
            print(f"  Branch {i}: {assignment}")
            if branch.conditions:
                print(f"    valid if: {sorted(str(c) for c in branch.conditions)}")
    return branches
