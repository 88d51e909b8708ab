"""chart-val — Helm chart drift reports for pull requests."""

__version__ = "0.1.0"
