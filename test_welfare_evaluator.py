import pytest
import sympy

from algebra_engine import make_branch
from solution_selector import SelectedSolution
from walras_errors import MarketNotClearing
from welfare_evaluator import (check_market_clearing, evaluate_welfare,
                               verify_closure)


@pytest.fixture
def selected(equilibrium_branch):
    return SelectedSolution(equilibrium_branch.values, 0)


@pytest.fixture
def off_equilibrium(model):
    s = model.symbols
    k = model.k
    branch = make_branch({s["px"]: sympy.Rational(1, 2), s["py"]: 1, s["z_alpha"]: k / 2, s["z_beta"]: k / 2})
    return SelectedSolution(branch.values, 0)


def test_market_clears_identically(model, engine, selected):
    residual, clears, warning = check_market_clearing(model, selected, engine)
    assert residual == 0
    assert clears
    assert warning is None


def test_closure_law(model, engine, selected):
    residuals = verify_closure(model, selected, engine)
    assert len(residuals) == 4
    assert all(r == 0 for r in residuals)


def test_closed_form_welfare(model, engine, selected):
    k = model.k
    result = evaluate_welfare(model, selected, engine)
    assert result.market_clears
    assert result.warnings == ()
    assert sympy.simplify(result.incomes["A"] - k) == 0
    assert sympy.simplify(result.incomes["B"] - k / 3) == 0
    assert sympy.simplify(result.allocations["xA"] - k) == 0
    assert sympy.simplify(result.allocations["xB"] - k / 3) == 0
    assert sympy.simplify(result.utility_a - sympy.sqrt(3) * k ** sympy.Rational(3, 2) / 4) == 0
    assert sympy.simplify(result.utility_b - sympy.sqrt(3) * k ** sympy.Rational(3, 2) / 36) == 0
    assert result.welfare_ratio == 9


def test_goods_x_clears_by_walras_law(model, engine, selected):
    result = evaluate_welfare(model, selected, engine)
    supply_x = model.supply["X"].subs(dict(selected.values))
    demand_x = result.allocations["xA"] + result.allocations["xB"]
    assert sympy.simplify(demand_x - supply_x) == 0


def test_residual_surfaced_when_market_does_not_clear(model, engine, off_equilibrium):
    with pytest.warns(MarketNotClearing) as record:
        result = evaluate_welfare(model, off_equilibrium, engine)
    assert not result.market_clears
    assert result.excess_demand_y != 0
    assert result.excess_demand_y.free_symbols == {model.k}
    assert len(result.warnings) == 1
    assert result.warnings[0].residual == result.excess_demand_y
    assert record[0].message.residual == result.excess_demand_y
    # welfare is still computed
    assert result.utility_a.free_symbols <= {model.k}


def test_outputs_depend_on_k_only(model, engine, selected):
    result = evaluate_welfare(model, selected, engine)
    for expr in list(result.incomes.values()) + list(result.allocations.values()):
        assert expr.free_symbols <= {model.k}
    assert result.welfare_ratio.free_symbols <= {model.k}


def test_closure_law_on_solver_output(report, engine):
    residuals = verify_closure(report.model, report.solution, engine)
    assert len(residuals) == 4
    assert all(r == 0 for r in residuals)
