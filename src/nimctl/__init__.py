"""nimctl - kubectl-style CLI for NIM Operator custom resources."""

__version__ = "0.1.0"
