"""pipconverge — idempotent convergence of pip-managed Python packages."""

__version__ = "0.1.0"
