"""
Model Builder for the two-firm, two-good, one-input, two-consumer economy.

Structure:
    Firm Alpha:   x = 2 z            (constant returns, zero-profit pricing)
    Firm Beta:    y = sqrt(z)        (decreasing returns, profit to consumer B)
    Consumer A:   income = k * pz    (owns the input endowment k)
    Consumer B:   income = profit of Firm Beta
    Preferences:  Cobb-Douglas with equal expenditure shares on X and Y
    Numeraire:    pz = 1, substituted when the equations are built

The system solved for [px, py, z_alpha, z_beta] is:
    1. 2*px - pz = 0                              (Alpha zero profit)
    2. d/dz (py*sqrt(z_beta) - pz*z_beta) = 0     (Beta first-order condition)
    3. k = z_alpha + z_beta                       (input market)
    4. sqrt(z_beta) = yA + yB                     (goods market for Y)
The market for X clears by Walras' Law once these four hold.
"""

import types
from typing import Dict, NamedTuple, Tuple

import sympy

import walras_config as cfg
from walras_errors import ModelSpecificationError

# Symbol names, in the order the solver receives the unknowns
UNKNOWN_NAMES = ("px", "py", "z_alpha", "z_beta")
ENDOWMENT_NAME = "k"

_DOMAINS = {
    "positive": {"positive": True},
    "real": {"real": True},
    "unrestricted": {},
}


class EconomyModel(NamedTuple):
    equations: Tuple[sympy.Eq, ...]
    unknowns: Tuple[sympy.Symbol, ...]
    k: sympy.Symbol
    symbols: Dict[str, sympy.Symbol]
    numeraire: sympy.Expr
    profit_beta: sympy.Expr
    incomes: Dict[str, sympy.Expr]
    demands: Dict[str, sympy.Expr]
    supply: Dict[str, sympy.Expr]


def create_parameter(name, domain="positive"):
    """Create a named symbol restricted to `domain` ('positive', 'real' or 'unrestricted')."""
    if domain not in _DOMAINS:
        raise ValueError(f"Unknown domain '{domain}' for parameter '{name}'. Expected one of {list(_DOMAINS)}.")
    return sympy.Symbol(name, **_DOMAINS[domain])


def cobb_douglas_demand(income, price, share):
    """Demand for one good when a fixed `share` of income is spent on it."""
    return share * income / price


def firm_alpha_foc(px, pz):
    # x = 2z, so the value of the marginal product of z is 2*px
    return sympy.Eq(2 * px - pz, 0)


def firm_beta_profit(py, pz, z):
    return py * sympy.sqrt(z) - pz * z


def firm_beta_foc(profit, z):
    return sympy.Eq(sympy.diff(profit, z), 0)


def check_system(equations, unknowns):
    """
    Ensure the system is square and every unknown appears in it.

    Raises:
        ModelSpecificationError: on a count mismatch or an absent unknown
    """
    if len(equations) != len(unknowns):
        raise ModelSpecificationError(
            f"Number of equations ({len(equations)}) doesn't match number of unknowns ({len(unknowns)}).")
    free = set()
    for eq in equations:
        free |= eq.free_symbols
    absent = [str(u) for u in unknowns if u not in free]
    if absent:
        raise ModelSpecificationError(f"Unknowns {absent} do not appear in any equation.")


def build_model(verbose=cfg.VERBOSE) -> EconomyModel:
    """
    Build the equilibrium equations for the fixed economy.

    Returns:
        EconomyModel with the four equations, the ordered unknowns
        [px, py, z_alpha, z_beta], the free endowment symbol k and the
        income, demand and supply expressions the verifier substitutes into.
    """
    if verbose: print("\n--- Building Equilibrium Model ---")
    px, py, z_alpha, z_beta = (create_parameter(name, "positive") for name in UNKNOWN_NAMES)
    k = create_parameter(ENDOWMENT_NAME, "positive")
    pz = sympy.nsimplify(cfg.NUMERAIRE_PRICE)
    if not pz.is_positive:
        raise ModelSpecificationError(f"Numeraire price must be positive, got {cfg.NUMERAIRE_PRICE}.")

    share_x = sympy.Rational(*cfg.EXPENDITURE_SHARE_X)
    share_y = 1 - share_x

    # Firms
    alpha_foc = firm_alpha_foc(px, pz)
    profit_beta = firm_beta_profit(py, pz, z_beta)
    beta_foc = firm_beta_foc(profit_beta, z_beta)

    # Consumers
    incomes = {"A": k * pz, "B": profit_beta}
    demands = {
        "xA": cobb_douglas_demand(incomes["A"], px, share_x),
        "yA": cobb_douglas_demand(incomes["A"], py, share_y),
        "xB": cobb_douglas_demand(incomes["B"], px, share_x),
        "yB": cobb_douglas_demand(incomes["B"], py, share_y),
    }
    supply = {"X": 2 * z_alpha, "Y": sympy.sqrt(z_beta)}

    # Markets
    input_clearing = sympy.Eq(k, z_alpha + z_beta)
    goods_y_clearing = sympy.Eq(supply["Y"], demands["yA"] + demands["yB"])

    equations = (alpha_foc, beta_foc, input_clearing, goods_y_clearing)
    unknowns = (px, py, z_alpha, z_beta)
    check_system(equations, unknowns)

    if verbose:
        for i, eq in enumerate(equations, 1):
            print(f"  Eq {i}: {eq}")
        print(f"Unknowns: {[str(u) for u in unknowns]}, numeraire pz = {pz}")

    symbols = {str(s): s for s in unknowns + (k,)}
    return EconomyModel(
        equations=equations,
        unknowns=unknowns,
        k=k,
        symbols=types.MappingProxyType(symbols),
        numeraire=pz,
        profit_beta=profit_beta,
        incomes=types.MappingProxyType(incomes),
        demands=types.MappingProxyType(demands),
        supply=types.MappingProxyType(supply),
    )
