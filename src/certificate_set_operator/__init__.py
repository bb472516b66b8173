"""Kubernetes operator that manages cert-manager certificate sets."""

__version__ = "0.1.0"
