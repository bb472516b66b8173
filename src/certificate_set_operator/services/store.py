"""Kubernetes API implementation of the resource store."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable

from kubernetes import client, config
from kubernetes.client.exceptions import ApiException

from .. import metrics
from ..constants import (
    API_GROUP,
    API_VERSION,
    CERT_MANAGER_GROUP,
    CERT_MANAGER_VERSION,
    FIELD_MANAGER,
    KIND_CERTIFICATE,
    KIND_CERTIFICATE_SET,
    KIND_ISSUER,
    KIND_SECRET,
    PLURAL_CERTIFICATE_SET,
)
from ..utils.errors import ResourceAlreadyExistsError, ResourceNotFoundError

logger = logging.getLogger(__name__)

# kind -> (group, version, plural) for custom resources
CUSTOM_RESOURCES: dict[str, tuple[str, str, str]] = {
    KIND_CERTIFICATE: (CERT_MANAGER_GROUP, CERT_MANAGER_VERSION, "certificates"),
    KIND_ISSUER: (CERT_MANAGER_GROUP, CERT_MANAGER_VERSION, "issuers"),
    KIND_CERTIFICATE_SET: (API_GROUP, API_VERSION, PLURAL_CERTIFICATE_SET),
}


def load_kubernetes_config() -> None:
    """Load in-cluster configuration, falling back to the local kubeconfig."""
    try:
        config.load_incluster_config()
    except config.ConfigException:
        config.load_kube_config()


class KubernetesResourceStore:
    """Resource store backed by the Kubernetes API.

    Every call carries ``request_timeout`` so a hung API server cannot block
    a reconciliation attempt indefinitely.
    """

    def __init__(
        self,
        core_api: client.CoreV1Api | None = None,
        custom_api: client.CustomObjectsApi | None = None,
        request_timeout: float = 30.0,
    ) -> None:
        self.core_api = core_api or client.CoreV1Api()
        self.custom_api = custom_api or client.CustomObjectsApi()
        self.request_timeout = request_timeout

    def _call(self, operation: str, fn: Callable[..., Any], **kwargs: Any) -> Any:
        start_time = time.time()
        try:
            result = fn(_request_timeout=self.request_timeout, **kwargs)
            metrics.api_call_total.labels(api_type="k8s", operation=operation, result="success").inc()
            return result
        except ApiException as e:
            result_label = "not_found" if e.status == 404 else "conflict" if e.status == 409 else "error"
            metrics.api_call_total.labels(api_type="k8s", operation=operation, result=result_label).inc()
            raise
        finally:
            duration = time.time() - start_time
            metrics.api_call_duration_seconds.labels(api_type="k8s", operation=operation).observe(duration)

    def _to_dict(self, obj: Any) -> dict[str, Any]:
        if isinstance(obj, dict):
            return obj
        return self.core_api.api_client.sanitize_for_serialization(obj)

    def get(self, kind: str, namespace: str | None, name: str) -> dict[str, Any]:
        """Read an object, raising ResourceNotFoundError on 404."""
        try:
            if kind == KIND_SECRET:
                obj = self._call("get_secret", self.core_api.read_namespaced_secret, name=name, namespace=namespace)
            else:
                group, version, plural = CUSTOM_RESOURCES[kind]
                obj = self._call(
                    f"get_{kind.lower()}",
                    self.custom_api.get_namespaced_custom_object,
                    group=group,
                    version=version,
                    namespace=namespace,
                    plural=plural,
                    name=name,
                )
        except ApiException as e:
            if e.status == 404:
                raise ResourceNotFoundError(kind, namespace, name) from e
            raise
        return self._to_dict(obj)

    def create(self, kind: str, body: dict[str, Any]) -> dict[str, Any]:
        """Create an object, raising ResourceAlreadyExistsError on 409."""
        meta = body.get("metadata", {})
        namespace = meta.get("namespace")
        name = meta.get("name", "")
        try:
            if kind == KIND_SECRET:
                obj = self._call(
                    "create_secret",
                    self.core_api.create_namespaced_secret,
                    namespace=namespace,
                    body=body,
                    field_manager=FIELD_MANAGER,
                )
            else:
                group, version, plural = CUSTOM_RESOURCES[kind]
                obj = self._call(
                    f"create_{kind.lower()}",
                    self.custom_api.create_namespaced_custom_object,
                    group=group,
                    version=version,
                    namespace=namespace,
                    plural=plural,
                    body=body,
                    field_manager=FIELD_MANAGER,
                )
        except ApiException as e:
            if e.status == 409:
                raise ResourceAlreadyExistsError(kind, namespace, name) from e
            raise
        return self._to_dict(obj)

    def update(self, kind: str, body: dict[str, Any]) -> dict[str, Any]:
        meta = body.get("metadata", {})
        namespace = meta.get("namespace")
        name = meta.get("name", "")
        try:
            if kind == KIND_SECRET:
                obj = self._call(
                    "update_secret",
                    self.core_api.replace_namespaced_secret,
                    name=name,
                    namespace=namespace,
                    body=body,
                    field_manager=FIELD_MANAGER,
                )
            else:
                group, version, plural = CUSTOM_RESOURCES[kind]
                obj = self._call(
                    f"update_{kind.lower()}",
                    self.custom_api.replace_namespaced_custom_object,
                    group=group,
                    version=version,
                    namespace=namespace,
                    plural=plural,
                    name=name,
                    body=body,
                )
        except ApiException as e:
            if e.status == 404:
                raise ResourceNotFoundError(kind, namespace, name) from e
            raise
        return self._to_dict(obj)

    def delete(self, kind: str, namespace: str | None, name: str) -> None:
        """Delete an object, raising ResourceNotFoundError on 404."""
        try:
            if kind == KIND_SECRET:
                self._call("delete_secret", self.core_api.delete_namespaced_secret, name=name, namespace=namespace)
            else:
                group, version, plural = CUSTOM_RESOURCES[kind]
                self._call(
                    f"delete_{kind.lower()}",
                    self.custom_api.delete_namespaced_custom_object,
                    group=group,
                    version=version,
                    namespace=namespace,
                    plural=plural,
                    name=name,
                )
        except ApiException as e:
            if e.status == 404:
                raise ResourceNotFoundError(kind, namespace, name) from e
            raise

    def namespace_exists(self, name: str) -> bool:
        try:
            self._call("get_namespace", self.core_api.read_namespace, name=name)
        except ApiException as e:
            if e.status == 404:
                return False
            raise
        return True

    def annotate(self, kind: str, namespace: str, name: str, annotations: dict[str, str]) -> None:
        """Merge-patch annotations onto a custom resource, raising ResourceNotFoundError on 404."""
        group, version, plural = CUSTOM_RESOURCES[kind]
        try:
            self._call(
                f"annotate_{kind.lower()}",
                self.custom_api.patch_namespaced_custom_object,
                group=group,
                version=version,
                namespace=namespace,
                plural=plural,
                name=name,
                body={"metadata": {"annotations": annotations}},
            )
        except ApiException as e:
            if e.status == 404:
                raise ResourceNotFoundError(kind, namespace, name) from e
            raise
