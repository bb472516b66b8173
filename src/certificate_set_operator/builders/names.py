"""Names of the resources derived from a CertificateSet."""

from __future__ import annotations

from ..constants import (
    SUFFIX_ARGOCD_CLUSTER,
    SUFFIX_CA,
    SUFFIX_CA_OIDC,
    SUFFIX_ETCD,
    SUFFIX_KUBECONFIG,
    SUFFIX_PROXY,
    SUFFIX_SUPER_ADMIN,
)
from ..models import CertificateSet


def ca_name(cs: CertificateSet) -> str:
    """Name of the CA Certificate, its Secret and the Issuer."""
    return cs.name + SUFFIX_CA


def super_admin_name(cs: CertificateSet) -> str:
    return cs.name + SUFFIX_SUPER_ADMIN


def etcd_name(cs: CertificateSet) -> str:
    return cs.name + SUFFIX_ETCD


def proxy_name(cs: CertificateSet) -> str:
    return cs.name + SUFFIX_PROXY


def ca_oidc_name(cs: CertificateSet) -> str:
    return cs.name + SUFFIX_CA_OIDC


def kubeconfig_name(cs: CertificateSet) -> str:
    return cs.name + SUFFIX_KUBECONFIG


def argocd_cluster_name(cs: CertificateSet) -> str:
    return cs.name + SUFFIX_ARGOCD_CLUSTER


def all_certificate_names(cs: CertificateSet) -> list[str]:
    """All Certificate names that should exist for the current spec, in creation order."""
    names = [ca_name(cs)]

    if cs.environment.has_auxiliary_certificates:
        names.extend([etcd_name(cs), proxy_name(cs), ca_oidc_name(cs)])

    if cs.needs_client_certificates:
        names.append(super_admin_name(cs))

    return names
