"""
Error and warning taxonomy for the equilibrium pipeline.

Fatal conditions derive from EquilibriumError and abort the pipeline.
Non-fatal conditions derive from EquilibriumWarning; they are issued through
the warnings module and also attached to the record they qualify.
"""


class EquilibriumError(Exception):
    """Base class for fatal pipeline errors."""


class NoSolutionFound(EquilibriumError):
    """The algebra engine returned no solution branch."""


class SolverTimeout(EquilibriumError):
    """The algebra engine did not return within its time budget."""

    def __init__(self, timeout):
        self.timeout = timeout
        super().__init__(f"Algebra engine did not finish within {timeout} s.")


class AlgebraEngineError(EquilibriumError):
    """Any other failure raised inside the algebra engine."""


class ModelSpecificationError(EquilibriumError, ValueError):
    """The equation system is not square or references missing unknowns."""


class InadmissibleSolution(EquilibriumError):
    """A fallback branch evaluates to a non-positive price or quantity."""

    def __init__(self, message, unknown=None, k_value=None, value=None):
        self.unknown = unknown
        self.k_value = k_value
        self.value = value
        super().__init__(message)


class EquilibriumWarning(UserWarning):
    """Base class for non-fatal pipeline conditions."""


class AmbiguousPositivity(EquilibriumWarning):
    """No branch could be proven positive in py; the first branch was used."""


class MarketNotClearing(EquilibriumWarning):
    """Excess demand for good Y did not simplify to zero."""

    def __init__(self, message, residual=None):
        self.residual = residual
        super().__init__(message)
