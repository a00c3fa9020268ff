"""Wufei: tail every container log in a Kubernetes namespace at once."""

__version__ = "0.2.0"
