"""Builders for Secrets derived from the super-admin credential bundle."""

from __future__ import annotations

from typing import Any

from jinja2 import Environment, StrictUndefined, TemplateError

from ..constants import (
    ANNOTATION_OWNER,
    ANNOTATION_OWNER_UID,
    KIND_SECRET,
    LABEL_ARGOCD_SECRET_TYPE,
)
from ..models import CertificateData, CertificateSet
from ..utils.errors import TemplateRenderError
from ..utils.secrets import encode_secret_value
from .meta import build_object_meta
from .names import argocd_cluster_name, kubeconfig_name

_env = Environment(undefined=StrictUndefined, autoescape=False)

KUBECONFIG_TEMPLATE = _env.from_string(
    """apiVersion: v1
clusters:
    - cluster:
        certificate-authority-data: {{ ca_cert }}
        server: {{ server }}
      name: {{ cluster_name }}
contexts:
    - context:
        cluster: {{ cluster_name }}
        user: {{ cluster_name }}-super-admin
      name: {{ cluster_name }}-super-admin@{{ cluster_name }}
current-context: {{ cluster_name }}-super-admin@{{ cluster_name }}
kind: Config
users:
    - name: {{ cluster_name }}-super-admin
      user:
        client-certificate-data: {{ tls_cert }}
        client-key-data: {{ tls_key }}"""
)

ARGOCD_CONFIG_TEMPLATE = _env.from_string(
    """{
  "tlsClientConfig": {
    "caData": "{{ ca_cert }}",
    "certData": "{{ tls_cert }}",
    "insecure": false,
    "keyData": "{{ tls_key }}"
  }
}"""
)


def _bundle_context(bundle: CertificateData) -> dict[str, str]:
    return {"ca_cert": bundle.ca_cert, "tls_cert": bundle.tls_cert, "tls_key": bundle.tls_key}


def render_kubeconfig(cs: CertificateSet, bundle: CertificateData) -> str:
    """Render the kubeconfig for the super-admin user.

    Raises:
        TemplateRenderError: If the template cannot be rendered
    """
    try:
        return KUBECONFIG_TEMPLATE.render(
            cluster_name=cs.name,
            server=cs.kubeconfig_endpoint,
            **_bundle_context(bundle),
        )
    except TemplateError as e:
        raise TemplateRenderError(f"failed to render kubeconfig template: {e}") from e


def render_argocd_config(bundle: CertificateData) -> str:
    """Render the ArgoCD cluster ``config`` JSON document."""
    try:
        return ARGOCD_CONFIG_TEMPLATE.render(**_bundle_context(bundle))
    except TemplateError as e:
        raise TemplateRenderError(f"failed to render ArgoCD config template: {e}") from e


def build_kubeconfig_secret(cs: CertificateSet, bundle: CertificateData) -> dict[str, Any]:
    """Build the same-namespace kubeconfig Secret."""
    return {
        "apiVersion": "v1",
        "kind": KIND_SECRET,
        "metadata": build_object_meta(cs, kubeconfig_name(cs)),
        "type": "Opaque",
        "data": {"value": encode_secret_value(render_kubeconfig(cs, bundle))},
    }


def build_argocd_cluster_secret(
    cs: CertificateSet,
    bundle: CertificateData,
    namespace: str,
) -> dict[str, Any]:
    """Build the ArgoCD cluster registration Secret.

    It lives in the ArgoCD namespace, so it carries no owner reference.
    Ownership is recorded in annotations instead.
    """
    meta = build_object_meta(cs, argocd_cluster_name(cs), namespace=namespace, owned=False)
    meta["labels"][LABEL_ARGOCD_SECRET_TYPE] = "cluster"
    meta["annotations"][ANNOTATION_OWNER] = cs.identity
    meta["annotations"][ANNOTATION_OWNER_UID] = cs.uid
    return {
        "apiVersion": "v1",
        "kind": KIND_SECRET,
        "metadata": meta,
        "type": "Opaque",
        "data": {
            "config": encode_secret_value(render_argocd_config(bundle)),
            "name": encode_secret_value(cs.name),
            "server": encode_secret_value(cs.kubeconfig_endpoint),
        },
    }
