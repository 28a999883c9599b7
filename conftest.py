import pytest
import sympy

from algebra_engine import AlgebraEngine, SympyEngine, make_branch
from equilibrium_pipeline import run_pipeline
from model_builder import build_model


class StubEngine(AlgebraEngine):
    """Returns canned branches and a fixed answer to every truth query."""

    def __init__(self, branches=(), truth=None):
        self.branches = list(branches)
        self.truth = truth
        self.calls = []

    def solve(self, equations, unknowns, with_conditions=True, timeout=None):
        self.calls.append((tuple(equations), tuple(unknowns), with_conditions, timeout))
        return list(self.branches)

    def is_always_true(self, relation, assumptions=()):
        return self.truth

    def simplify(self, expr):
        return sympy.simplify(expr)


class InconclusiveSympyEngine(SympyEngine):
    """Real sympy solving, but positivity can never be decided."""

    def is_always_true(self, relation, assumptions=()):
        return None


@pytest.fixture(scope="session")
def model():
    return build_model()


@pytest.fixture(scope="session")
def engine():
    return SympyEngine()


@pytest.fixture(scope="session")
def report(engine):
    return run_pipeline(engine=engine)


@pytest.fixture
def equilibrium_branch(model):
    """The closed-form equilibrium, written out by hand."""
    s = model.symbols
    k = s["k"]
    return make_branch({
        s["px"]: sympy.Rational(1, 2),
        s["py"]: 2 * sympy.sqrt(k / 3),
        s["z_alpha"]: 2 * k / 3,
        s["z_beta"]: k / 3,
    })


@pytest.fixture
def negative_branch(model):
    """Same quantities with the negative root taken for py."""
    s = model.symbols
    k = s["k"]
    return make_branch({
        s["px"]: sympy.Rational(1, 2),
        s["py"]: -2 * sympy.sqrt(k / 3),
        s["z_alpha"]: 2 * k / 3,
        s["z_beta"]: k / 3,
    })
