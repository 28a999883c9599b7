"""
End-to-end equilibrium pipeline: Builder -> Solver -> Selector -> Verifier.

Each stage returns a new immutable record consumed by the next one; nothing is
mutated along the way. The four data products of a run (prices in the
selected solution, allocations, market-clearing residual, welfare figures) are
collected in an EquilibriumReport together with every warning raised on the
way.
"""

import types
from typing import NamedTuple, Optional, Sequence, Tuple

import sympy

import walras_config as cfg
from algebra_engine import AlgebraEngine, SolutionBranch, SympyEngine
from equilibrium_solver import solve_equilibrium
from model_builder import EconomyModel, build_model
from solution_selector import SelectedSolution, select_solution
from walras_errors import EquilibriumWarning
from welfare_evaluator import WelfareResult, evaluate_welfare


class EquilibriumReport(NamedTuple):
    model: EconomyModel
    branches: Tuple[SolutionBranch, ...]
    solution: SelectedSolution
    welfare: WelfareResult
    warnings: Tuple[EquilibriumWarning, ...] = ()
    k_value: Optional[sympy.Expr] = None


def run_pipeline(engine: Optional[AlgebraEngine] = None,
                 k_value=None,
                 timeout: Optional[float] = cfg.SOLVER_TIMEOUT,
                 sanity_check: bool = True,
                 sample_k: Sequence[float] = cfg.SANITY_CHECK_K,
                 verbose: bool = cfg.VERBOSE) -> EquilibriumReport:
    """
    Build, solve, select and verify the equilibrium.

    Args:
        engine: algebra engine shared by all stages (SympyEngine by default)
        k_value: optional positive endowment bound into every output
        timeout: seconds allowed for the engine's solve call
        sanity_check: numerically check a fallback branch at `sample_k`
        sample_k: endowment values for the sanity check
        verbose: print progress from each stage

    Returns:
        EquilibriumReport

    Raises:
        NoSolutionFound, SolverTimeout, AlgebraEngineError,
        ModelSpecificationError, InadmissibleSolution: fatal, no report
    """
    engine = SympyEngine(verbose=verbose) if engine is None else engine

    model = build_model(verbose=verbose)
    branches = solve_equilibrium(model, engine, timeout=timeout, verbose=verbose)
    solution = select_solution(branches, model.k, engine, sanity_check=sanity_check,
                               sample_k=sample_k, verbose=verbose)
    welfare = evaluate_welfare(model, solution, engine, verbose=verbose)

    report = EquilibriumReport(model, branches, solution, welfare,
                               warnings=solution.warnings + welfare.warnings)
    if k_value is not None:
        report = bind_endowment(report, k_value)
    return report


def bind_endowment(report: EquilibriumReport, k_value) -> EquilibriumReport:
    """
    Substitute a positive literal for k in every output expression.

    Floats are converted to exact rationals first, so 2.5 binds as 5/2.
    """
    k_exact = sympy.nsimplify(k_value)
    if not k_exact.is_positive:
        raise ValueError(f"Endowment k must be a positive number, got {k_value}.")

    subs = {report.model.k: k_exact}

    def bind(expr):
        return sympy.simplify(sympy.sympify(expr).subs(subs))

    solution = report.solution._replace(
        values=types.MappingProxyType({sym: bind(expr) for sym, expr in report.solution.values.items()}))
    welfare = report.welfare._replace(
        excess_demand_y=bind(report.welfare.excess_demand_y),
        incomes={name: bind(expr) for name, expr in report.welfare.incomes.items()},
        allocations={name: bind(expr) for name, expr in report.welfare.allocations.items()},
        utility_a=bind(report.welfare.utility_a),
        utility_b=bind(report.welfare.utility_b),
        welfare_ratio=bind(report.welfare.welfare_ratio),
    )
    return report._replace(solution=solution, welfare=welfare, k_value=k_exact)
