"""Models for CertificateSet resources and their derived data."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Mapping

from .constants import (
    CERT_MANAGER_GROUP_VERSION,
    ENV_CLIENT,
    ENV_INFRA,
    ENV_SYSTEM,
    FINALIZER,
    KIND_CLUSTER_ISSUER,
    SECRET_KEY_CA_CRT,
    SECRET_KEY_TLS_CRT,
    SECRET_KEY_TLS_KEY,
)


class Environment(str, enum.Enum):
    """Which certificate set a CertificateSet generates."""

    CLIENT = ENV_CLIENT
    SYSTEM = ENV_SYSTEM
    INFRA = ENV_INFRA

    @property
    def has_auxiliary_certificates(self) -> bool:
        return self in (Environment.SYSTEM, Environment.INFRA)


@dataclass(frozen=True)
class IssuerReference:
    """Reference to a cert-manager signing authority."""

    name: str
    kind: str = KIND_CLUSTER_ISSUER
    api_version: str = CERT_MANAGER_GROUP_VERSION

    @property
    def group(self) -> str:
        """API group parsed from ``api_version`` (empty for the core group)."""
        group, sep, _ = self.api_version.rpartition("/")
        return group if sep else ""

    @classmethod
    def from_spec(cls, ref: Mapping[str, Any] | None) -> IssuerReference | None:
        if not ref:
            return None
        return cls(
            name=ref.get("name", ""),
            kind=ref.get("kind") or KIND_CLUSTER_ISSUER,
            api_version=ref.get("apiVersion") or CERT_MANAGER_GROUP_VERSION,
        )


@dataclass(frozen=True)
class CertificateData:
    """Credential bundle read from a cert-manager generated Secret.

    Values are base64-encoded, exactly as stored in the Secret's ``data``.
    """

    ca_cert: str
    tls_cert: str
    tls_key: str

    @classmethod
    def from_secret_data(cls, data: Mapping[str, str]) -> CertificateData:
        return cls(
            ca_cert=data.get(SECRET_KEY_CA_CRT, ""),
            tls_cert=data.get(SECRET_KEY_TLS_CRT, ""),
            tls_key=data.get(SECRET_KEY_TLS_KEY, ""),
        )


@dataclass(frozen=True)
class CertificateSet:
    """Desired state of one certificate topology."""

    name: str
    namespace: str
    environment: Environment
    issuer_ref: IssuerReference
    issuer_ref_oidc: IssuerReference | None = None
    kubeconfig: bool = False
    argocd_cluster: bool = False
    kubeconfig_endpoint: str = ""
    uid: str = ""
    generation: int = 0
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)
    finalizers: tuple[str, ...] = ()
    deletion_timestamp: str | None = None

    @property
    def needs_client_certificates(self) -> bool:
        """Issuer and super-admin certificate are needed for any derived secret."""
        return self.kubeconfig or self.argocd_cluster

    @property
    def is_being_deleted(self) -> bool:
        return bool(self.deletion_timestamp)

    @property
    def has_finalizer(self) -> bool:
        return FINALIZER in self.finalizers

    @property
    def identity(self) -> str:
        return f"{self.namespace}/{self.name}"

    @classmethod
    def from_body(cls, body: Mapping[str, Any]) -> CertificateSet:
        """Parse a CertificateSet object as delivered by the API server."""
        meta = body.get("metadata") or {}
        spec = body.get("spec") or {}
        issuer_ref = IssuerReference.from_spec(spec.get("issuerRef")) or IssuerReference(name="")
        return cls(
            name=meta.get("name", ""),
            namespace=meta.get("namespace", "default"),
            environment=Environment(spec.get("environment", ENV_CLIENT)),
            issuer_ref=issuer_ref,
            issuer_ref_oidc=IssuerReference.from_spec(spec.get("issuerRefOidc")),
            kubeconfig=bool(spec.get("kubeconfig", False)),
            argocd_cluster=bool(spec.get("argocdCluster", False)),
            kubeconfig_endpoint=spec.get("kubeconfigEndpoint") or "",
            uid=meta.get("uid", ""),
            generation=int(meta.get("generation") or 0),
            labels=dict(meta.get("labels") or {}),
            annotations=dict(meta.get("annotations") or {}),
            finalizers=tuple(meta.get("finalizers") or ()),
            deletion_timestamp=meta.get("deletionTimestamp"),
        )


@dataclass(frozen=True)
class ReconcileResult:
    """Outcome of one reconciliation attempt that did not fail.

    ``requeue`` asks for an immediate re-invocation, ``requeue_after`` for a
    delayed one. Both unset means the topology has converged.
    """

    requeue: bool = False
    requeue_after: float | None = None
    message: str = ""

    @property
    def done(self) -> bool:
        return not self.requeue and self.requeue_after is None
