"""Keep a local directory and a remote blob store converged."""

__version__ = "0.1.0"
