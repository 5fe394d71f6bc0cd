"""Cache Monitor - overvåger mappestørrelser og advarer ved overskredne grænser."""

__version__ = "0.1.0"
