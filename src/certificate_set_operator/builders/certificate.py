"""Builders for cert-manager Certificate and Issuer manifests."""

from __future__ import annotations

from typing import Any

from ..constants import (
    CA_DURATION,
    CERT_MANAGER_GROUP,
    CERT_MANAGER_GROUP_VERSION,
    CLIENT_DURATION,
    KIND_CERTIFICATE,
    KIND_ISSUER,
    RENEW_BEFORE,
)
from ..models import CertificateSet, Environment, IssuerReference
from .meta import build_object_meta
from .names import ca_name, ca_oidc_name, etcd_name, proxy_name, super_admin_name

CA_USAGES = ["cert sign", "key encipherment", "digital signature"]
CLIENT_USAGES = ["client auth", "data encipherment", "key encipherment"]


def _issuer_ref(ref: IssuerReference) -> dict[str, str]:
    return {"group": ref.group, "kind": ref.kind, "name": ref.name}


def _private_key(rotation_policy: str) -> dict[str, Any]:
    return {"algorithm": "RSA", "rotationPolicy": rotation_policy, "size": 2048}


def _certificate(cs: CertificateSet, name: str, spec: dict[str, Any]) -> dict[str, Any]:
    base_spec: dict[str, Any] = {
        "commonName": name,
        "secretName": name,
        "secretTemplate": {"labels": dict(cs.labels)},
        "renewBefore": RENEW_BEFORE,
    }
    base_spec.update(spec)
    return {
        "apiVersion": CERT_MANAGER_GROUP_VERSION,
        "kind": KIND_CERTIFICATE,
        "metadata": build_object_meta(cs, name),
        "spec": base_spec,
    }


def _ca_certificate(cs: CertificateSet, name: str) -> dict[str, Any]:
    return _certificate(
        cs,
        name,
        {
            "duration": CA_DURATION,
            "isCA": True,
            "issuerRef": _issuer_ref(cs.issuer_ref),
            "privateKey": _private_key("Never"),
            "usages": list(CA_USAGES),
        },
    )


def build_ca_certificate(cs: CertificateSet) -> dict[str, Any]:
    """Build the root CA Certificate signed by ``spec.issuerRef``."""
    return _ca_certificate(cs, ca_name(cs))


def build_etcd_certificate(cs: CertificateSet) -> dict[str, Any]:
    return _ca_certificate(cs, etcd_name(cs))


def build_proxy_certificate(cs: CertificateSet) -> dict[str, Any]:
    return _ca_certificate(cs, proxy_name(cs))


def build_oidc_certificate(cs: CertificateSet) -> dict[str, Any]:
    """Build the OIDC signing certificate.

    ``system`` makes it a CA signed by ``spec.issuerRef``; ``infra`` makes it a
    leaf signed by ``spec.issuerRefOidc``, falling back to ``spec.issuerRef``
    when no OIDC issuer is given.
    """
    spec: dict[str, Any] = {
        "duration": CA_DURATION,
        "privateKey": _private_key("Never"),
    }
    if cs.environment == Environment.INFRA:
        spec["isCA"] = False
        spec["issuerRef"] = _issuer_ref(cs.issuer_ref_oidc or cs.issuer_ref)
    else:
        spec["isCA"] = True
        spec["issuerRef"] = _issuer_ref(cs.issuer_ref)
        spec["usages"] = list(CA_USAGES)
    return _certificate(cs, ca_oidc_name(cs), spec)


def build_auxiliary_certificates(cs: CertificateSet) -> list[dict[str, Any]]:
    """Certificates that exist only for ``system`` and ``infra`` environments."""
    if not cs.environment.has_auxiliary_certificates:
        return []
    return [build_etcd_certificate(cs), build_proxy_certificate(cs), build_oidc_certificate(cs)]


def build_issuer(cs: CertificateSet) -> dict[str, Any]:
    """Build the namespaced CA Issuer backed by the CA Secret."""
    name = ca_name(cs)
    return {
        "apiVersion": CERT_MANAGER_GROUP_VERSION,
        "kind": KIND_ISSUER,
        "metadata": build_object_meta(cs, name),
        "spec": {"ca": {"secretName": name}},
    }


def build_super_admin_certificate(cs: CertificateSet, issuer_name: str) -> dict[str, Any]:
    """Build the ``system:masters`` client certificate issued by the CA Issuer."""
    return _certificate(
        cs,
        super_admin_name(cs),
        {
            "duration": CLIENT_DURATION,
            "isCA": False,
            "issuerRef": {"group": CERT_MANAGER_GROUP, "kind": KIND_ISSUER, "name": issuer_name},
            "privateKey": _private_key("Always"),
            "subject": {"organizations": ["system:masters"]},
            "usages": list(CLIENT_USAGES),
        },
    )
