"""Kubernetes access for the CertificateSet Operator."""

from .base import ResourceStore
from .readiness import ReadinessOracle
from .store import KubernetesResourceStore, load_kubernetes_config

__all__ = [
    "KubernetesResourceStore",
    "ReadinessOracle",
    "ResourceStore",
    "load_kubernetes_config",
]
