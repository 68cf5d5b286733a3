"""Engine — the convergence controller."""

from pipconverge.core.engine.converge import ConvergenceController

__all__ = ["ConvergenceController"]
