"""
Verifier & Welfare Evaluator.

Substitutes the selected solution back into the model to
  - check that excess demand for good Y is identically zero in k (Walras' Law),
  - check that each of the four equations holds (closure),
  - derive incomes, allocations, Cobb-Douglas utilities and the welfare ratio
    of consumer A to consumer B as closed forms in k.
"""

import warnings
from typing import Dict, NamedTuple, Optional, Tuple

import sympy

import walras_config as cfg
from algebra_engine import AlgebraEngine, SympyEngine
from model_builder import EconomyModel
from solution_selector import SelectedSolution
from walras_errors import EquilibriumWarning, MarketNotClearing


class WelfareResult(NamedTuple):
    excess_demand_y: sympy.Expr
    market_clears: bool
    incomes: Dict[str, sympy.Expr]
    allocations: Dict[str, sympy.Expr]
    utility_a: sympy.Expr
    utility_b: sympy.Expr
    welfare_ratio: sympy.Expr
    warnings: Tuple[EquilibriumWarning, ...] = ()


def _substitute(expr, solution):
    return sympy.sympify(expr).subs(dict(solution.values))


def check_market_clearing(model: EconomyModel, solution: SelectedSolution,
                          engine: Optional[AlgebraEngine] = None):
    """
    Excess demand for good Y at the selected solution.

    Returns:
        (residual, clears, warning): the simplified demand-minus-supply
        expression, whether it is identically zero, and the
        MarketNotClearing warning issued when it is not (else None).
    """
    engine = SympyEngine() if engine is None else engine
    supply = _substitute(model.supply["Y"], solution)
    demand = _substitute(model.demands["yA"] + model.demands["yB"], solution)
    residual = engine.simplify(demand - supply)
    clears = engine.is_zero(residual) is True
    if clears:
        return sympy.Integer(0), True, None

    warning = MarketNotClearing(
        f"Excess demand for good Y does not simplify to zero: {residual}", residual=residual)
    warnings.warn(warning, stacklevel=2)
    return residual, False, warning


def verify_closure(model: EconomyModel, solution: SelectedSolution,
                   engine: Optional[AlgebraEngine] = None) -> Tuple[sympy.Expr, ...]:
    """Simplified lhs - rhs of every model equation at the selected solution."""
    engine = SympyEngine() if engine is None else engine
    return tuple(engine.simplify(_substitute(eq.lhs - eq.rhs, solution)) for eq in model.equations)


def evaluate_welfare(model: EconomyModel, solution: SelectedSolution,
                     engine: Optional[AlgebraEngine] = None,
                     verbose: bool = cfg.VERBOSE) -> WelfareResult:
    """
    Run the market-clearing check and compute the welfare figures.

    Consumer B's income is Firm Beta's profit evaluated at the selected
    z_beta and py. Utility is the Cobb-Douglas product x*y for each consumer;
    the welfare ratio is U_A / U_B. All outputs are simplified closed forms in
    k (or exact numbers when k has already been bound).
    """
    engine = SympyEngine() if engine is None else engine

    if verbose: print("\n--- Verifying Market Clearing ---")
    residual, clears, warning = check_market_clearing(model, solution, engine)
    if verbose: print(f"Excess demand for Y: {residual} ({'clears' if clears else 'DOES NOT CLEAR'})")

    if verbose: print("\n--- Evaluating Welfare ---")
    incomes = {name: engine.simplify(_substitute(expr, solution)) for name, expr in model.incomes.items()}
    allocations = {name: engine.simplify(_substitute(expr, solution)) for name, expr in model.demands.items()}

    utility_a = engine.simplify(allocations["xA"] * allocations["yA"])
    utility_b = engine.simplify(allocations["xB"] * allocations["yB"])
    welfare_ratio = engine.simplify(utility_a / utility_b)
    if verbose:
        print(f"  U_A = {utility_a}")
        print(f"  U_B = {utility_b}")
        print(f"  U_A / U_B = {welfare_ratio}")

    return WelfareResult(
        excess_demand_y=residual,
        market_clears=clears,
        incomes=incomes,
        allocations=allocations,
        utility_a=utility_a,
        utility_b=utility_b,
        welfare_ratio=welfare_ratio,
        warnings=() if warning is None else (warning,),
    )
