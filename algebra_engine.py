"""
Algebra engine interface and its sympy implementation.

The equilibrium pipeline never calls sympy's solver directly: it talks to an
AlgebraEngine, which returns every solution branch of a system together with
the side conditions under which the branch is valid, and answers truth
queries on inequalities. Tests swap in stub engines that return canned
branches.
"""

import concurrent.futures
import threading
import types
from typing import Dict, FrozenSet, List, NamedTuple, Optional, Sequence

import sympy
from sympy.core.relational import (Equality, GreaterThan, LessThan,
                                   StrictGreaterThan, StrictLessThan,
                                   Unequality)

from walras_errors import AlgebraEngineError, SolverTimeout


class SolutionBranch(NamedTuple):
    """One assignment of closed-form expressions to the unknowns."""
    values: Dict[sympy.Symbol, sympy.Expr]
    conditions: FrozenSet[sympy.Basic] = frozenset()


def make_branch(values, conditions=()):
    """Freeze a {unknown: expression} mapping into a SolutionBranch."""
    frozen = types.MappingProxyType({sym: sympy.sympify(expr) for sym, expr in dict(values).items()})
    return SolutionBranch(frozen, frozenset(conditions))


class AlgebraEngine:
    """Capabilities the pipeline needs from a symbolic algebra back end."""

    def solve(self, equations, unknowns, with_conditions=True, timeout=None) -> List[SolutionBranch]:
        raise NotImplementedError

    def is_always_true(self, relation, assumptions=()) -> Optional[bool]:
        raise NotImplementedError

    def simplify(self, expr):
        return expr

    def is_zero(self, expr) -> Optional[bool]:
        simplified = self.simplify(sympy.sympify(expr))
        if simplified == 0:
            return True
        return simplified.is_zero


class SympyEngine(AlgebraEngine):
    """AlgebraEngine backed by sympy.solve and sympy's assumption system."""

    def __init__(self, verbose=False):
        self.verbose = verbose

    # --- Solving ---

    def solve(self, equations: Sequence, unknowns: Sequence[sympy.Symbol],
              with_conditions: bool = True, timeout: Optional[float] = None) -> List[SolutionBranch]:
        """
        Return all solution branches of `equations` for `unknowns`.

        Args:
            equations: sympy equalities (or expressions assumed equal to zero)
            unknowns: ordered list of symbols to solve for
            with_conditions: attach the domain conditions each branch needs
            timeout: seconds allowed for the solve call, None for no limit

        Returns:
            List of SolutionBranch in sympy's enumeration order.

        Raises:
            SolverTimeout: the solve call did not return within `timeout`
            AlgebraEngineError: sympy failed or returned an incomplete branch
        """
        equations = list(equations)
        unknowns = list(unknowns)
        if self.verbose:
            print(f"Solving {len(equations)} equations for {[str(u) for u in unknowns]}")

        if timeout is None:
            raw_solutions = self._solve_raw(equations, unknowns)
        else:
            raw_solutions = self._solve_with_timeout(equations, unknowns, timeout)

        branches = []
        for i, solution in enumerate(raw_solutions):
            missing = [u for u in unknowns if u not in solution]
            if missing:
                raise AlgebraEngineError(
                    f"Branch {i} leaves {[str(u) for u in missing]} undetermined: {solution}")
            values = {u: solution[u] for u in unknowns}
            conditions = self.branch_conditions(values) if with_conditions else ()
            branches.append(make_branch(values, conditions))

        if self.verbose:
            print(f"sympy returned {len(branches)} branch(es).")
        return branches

    def _solve_raw(self, equations, unknowns):
        try:
            return sympy.solve(equations, unknowns, dict=True)
        except Exception as e:
            raise AlgebraEngineError(f"sympy could not solve the system: {e}") from e

    def _solve_with_timeout(self, equations, unknowns, timeout):
        # Daemon worker: on timeout it is abandoned and does not hold up interpreter exit.
        future = concurrent.futures.Future()

        def run():
            try:
                future.set_result(self._solve_raw(equations, unknowns))
            except Exception as e:
                future.set_exception(e)

        threading.Thread(target=run, name="sympy-solve", daemon=True).start()
        try:
            return future.result(timeout=timeout)
        except concurrent.futures.TimeoutError as e:
            raise SolverTimeout(timeout) from e

    @staticmethod
    def branch_conditions(values) -> FrozenSet[sympy.Basic]:
        """Sign conditions implied by the unknowns' assumptions that the branch does not already satisfy."""
        conditions = set()
        for unknown, expr in values.items():
            if unknown.is_positive and expr.is_positive is not True:
                conditions.add(sympy.StrictGreaterThan(expr, 0, evaluate=False))
            elif unknown.is_nonnegative and expr.is_nonnegative is not True:
                conditions.add(sympy.GreaterThan(expr, 0, evaluate=False))
        return frozenset(conditions)

    # --- Truth queries and simplification ---

    def is_always_true(self, relation, assumptions=()) -> Optional[bool]:
        """
        Decide whether a relation holds for every value allowed by the
        assumptions on its free symbols and by the extra `assumptions`
        (relations such as a branch's side conditions).

        Returns True or False when decidable, None otherwise.
        """
        relation = sympy.sympify(relation)
        if relation is sympy.true:
            return True
        if relation is sympy.false:
            return False
        if not isinstance(relation, sympy.core.relational.Relational):
            raise AlgebraEngineError(f"Not a relation: {relation}")

        truth = self._sign_of(relation)
        if truth is None and assumptions:
            truth = self._implied_by(relation, assumptions)
        return truth

    @staticmethod
    def _sign_of(relation):
        diff = sympy.simplify(relation.lhs - relation.rhs)
        if isinstance(relation, StrictGreaterThan):
            return diff.is_positive
        if isinstance(relation, GreaterThan):
            return diff.is_nonnegative
        if isinstance(relation, StrictLessThan):
            return diff.is_negative
        if isinstance(relation, LessThan):
            return diff.is_nonpositive
        if isinstance(relation, Equality):
            return diff.is_zero
        if isinstance(relation, Unequality):
            is_zero = diff.is_zero
            return None if is_zero is None else not is_zero
        raise AlgebraEngineError(f"Unsupported relation type: {type(relation).__name__}")

    @staticmethod
    def _implied_by(relation, assumptions):
        # Only lower bounds are used: a > 0 implies a > 0 and a >= 0, a >= 0 implies a >= 0.
        if not isinstance(relation, GreaterThan) and not isinstance(relation, StrictGreaterThan):
            return None
        target = relation.lhs - relation.rhs
        for assumption in assumptions:
            assumption = sympy.sympify(assumption)
            if isinstance(assumption, StrictGreaterThan):
                strong_enough = True
            elif isinstance(assumption, GreaterThan):
                strong_enough = not isinstance(relation, StrictGreaterThan)
            else:
                continue
            if strong_enough and sympy.simplify(assumption.lhs - assumption.rhs - target) == 0:
                return True
        return None

    def simplify(self, expr):
        return sympy.simplify(expr)
