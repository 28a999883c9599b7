import math

import pytest
import sympy

from conftest import InconclusiveSympyEngine, StubEngine
from equilibrium_pipeline import bind_endowment, run_pipeline
from walras_errors import AmbiguousPositivity, MarketNotClearing, NoSolutionFound


def test_end_to_end_symbolic(report):
    k = report.model.k
    sol = report.solution
    assert not sol.fallback
    assert report.warnings == ()
    assert report.welfare.market_clears
    assert report.welfare.excess_demand_y == 0
    assert sympy.simplify(sol.z_alpha + sol.z_beta - k) == 0
    assert report.welfare.welfare_ratio.free_symbols <= {k}
    unknown_names = {"px", "py", "z_alpha", "z_beta"}
    for expr in (report.welfare.utility_a, report.welfare.utility_b, report.welfare.welfare_ratio):
        assert not {str(s) for s in expr.free_symbols} & unknown_names


def test_regression_closed_forms(report):
    k = report.model.k
    sol = report.solution
    assert sol.px == sympy.Rational(1, 2)
    assert sympy.simplify(sol.z_alpha - 2 * k / 3) == 0
    assert sympy.simplify(sol.z_beta - k / 3) == 0
    assert sympy.simplify(sol.py - 2 * sympy.sqrt(k / 3)) == 0


def test_homogeneity_in_endowment(report):
    k = report.model.k
    c = sympy.Symbol("c", positive=True)
    sol = report.solution
    for quantity in (sol.z_alpha, sol.z_beta):
        assert sympy.simplify(quantity.subs(k, c * k) - c * quantity) == 0
    # px is pinned by Firm Alpha's zero-profit condition
    assert sol.px.subs(k, c * k) == sol.px
    # py = 2*sqrt(z_beta) scales with the square root of the endowment
    assert sympy.simplify(sol.py.subs(k, c * k) - sympy.sqrt(c) * sol.py) == 0


def test_admissible_over_positive_endowments(report):
    k = report.model.k
    sol = report.solution
    for k_value in (sympy.Rational(1, 10), 1, 4, 250):
        for expr in (sol.px, sol.py, sol.z_alpha, sol.z_beta):
            assert expr.subs(k, k_value).is_positive
    assert sol.py.is_positive and sol.px.is_positive


def test_bound_at_k_equals_four(report):
    bound = bind_endowment(report, 4)
    sol = bound.solution
    assert bound.k_value == 4
    values = [sol.px, sol.py, sol.z_alpha, sol.z_beta]
    for v in values:
        assert v.is_number
        number = float(v)
        assert math.isfinite(number) and number > 0
    assert sol.z_alpha == sympy.Rational(8, 3)
    assert sol.z_beta == sympy.Rational(4, 3)
    assert sympy.simplify(sol.py - 4 * sympy.sqrt(3) / 3) == 0
    assert bound.welfare.welfare_ratio == 9
    assert bound.welfare.excess_demand_y == 0
    assert float(bound.welfare.utility_a) == pytest.approx(2 * math.sqrt(3))


def test_bind_converts_floats_to_exact(report):
    bound = bind_endowment(report, 1.5)
    assert bound.k_value == sympy.Rational(3, 2)
    assert bound.solution.z_beta == sympy.Rational(1, 2)


def test_bind_rejects_non_positive(report):
    with pytest.raises(ValueError):
        bind_endowment(report, 0)
    with pytest.raises(ValueError):
        bind_endowment(report, -2)


def test_pipeline_binds_k(engine):
    bound = run_pipeline(engine=engine, k_value=9)
    assert bound.solution.z_alpha == 6
    assert bound.solution.py == 2 * sympy.sqrt(3)


def test_pipeline_does_not_mutate_report(report):
    before = dict(report.solution.values)
    bind_endowment(report, 4)
    assert dict(report.solution.values) == before
    assert report.k_value is None


def test_fallback_path_end_to_end():
    with pytest.warns(AmbiguousPositivity):
        fallback = run_pipeline(engine=InconclusiveSympyEngine())
    assert fallback.solution.branch_index == 0
    assert fallback.solution.fallback
    assert any(isinstance(w, AmbiguousPositivity) for w in fallback.warnings)
    # the fallback branch is still the real equilibrium here
    assert fallback.welfare.market_clears


def test_no_solution_aborts_pipeline():
    with pytest.raises(NoSolutionFound):
        run_pipeline(engine=StubEngine([]))


def test_canned_branch_through_pipeline(equilibrium_branch, negative_branch):
    stub = StubEngine([negative_branch, equilibrium_branch], truth=True)
    with pytest.warns(MarketNotClearing):
        result = run_pipeline(engine=stub)
    # the stub claims every branch is positive, so the first one is kept
    assert result.solution.branch_index == 0
    assert len(result.branches) == 2
    assert not result.welfare.market_clears
    assert any(isinstance(w, MarketNotClearing) for w in result.warnings)
