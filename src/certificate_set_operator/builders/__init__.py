"""Builders for Kubernetes resources."""

from .certificate import (
    build_auxiliary_certificates,
    build_ca_certificate,
    build_issuer,
    build_oidc_certificate,
    build_super_admin_certificate,
)
from .secret import build_argocd_cluster_secret, build_kubeconfig_secret

__all__ = [
    "build_auxiliary_certificates",
    "build_ca_certificate",
    "build_issuer",
    "build_oidc_certificate",
    "build_super_admin_certificate",
    "build_argocd_cluster_secret",
    "build_kubeconfig_secret",
]
