"""Shared fixtures: an in-memory resource store and CertificateSet factories."""

from __future__ import annotations

import base64
import copy
from typing import Any, Callable

import kopf
import pytest

from certificate_set_operator.config import OperatorConfig
from certificate_set_operator.constants import (
    API_GROUP_VERSION,
    DEFAULT_ARGOCD_NAMESPACE,
    FINALIZER,
    KIND_CERTIFICATE,
    KIND_CERTIFICATE_SET,
    KIND_ISSUER,
    KIND_SECRET,
)
from certificate_set_operator.models import ReconcileResult
from certificate_set_operator.reconciler import CertificateSetReconciler
from certificate_set_operator.utils.errors import ResourceAlreadyExistsError, ResourceNotFoundError


def b64(value: str) -> str:
    return base64.b64encode(value.encode("utf-8")).decode("utf-8")


class FakeStore:
    """In-memory ResourceStore.

    ``fail_on[(operation, kind)]`` makes that call raise the given exception.
    """

    def __init__(self, namespaces: tuple[str, ...] = ("default",)):
        self.objects: dict[tuple[str, str | None, str], dict[str, Any]] = {}
        self.namespaces = set(namespaces)
        self.calls: list[tuple[str, str, str]] = []
        self.fail_on: dict[tuple[str, str], Exception] = {}
        self._resource_version = 0

    def _check(self, operation: str, kind: str, name: str) -> None:
        self.calls.append((operation, kind, name))
        error = self.fail_on.get((operation, kind))
        if error is not None:
            raise error

    def _next_version(self) -> str:
        self._resource_version += 1
        return str(self._resource_version)

    def get(self, kind: str, namespace: str | None, name: str) -> dict[str, Any]:
        self._check("get", kind, name)
        try:
            return copy.deepcopy(self.objects[(kind, namespace, name)])
        except KeyError:
            raise ResourceNotFoundError(kind, namespace, name) from None

    def create(self, kind: str, body: dict[str, Any]) -> dict[str, Any]:
        meta = body["metadata"]
        self._check("create", kind, meta["name"])
        key = (kind, meta.get("namespace"), meta["name"])
        if key in self.objects:
            raise ResourceAlreadyExistsError(kind, key[1], key[2])
        stored = copy.deepcopy(body)
        stored["metadata"]["resourceVersion"] = self._next_version()
        self.objects[key] = stored
        return copy.deepcopy(stored)

    def update(self, kind: str, body: dict[str, Any]) -> dict[str, Any]:
        meta = body["metadata"]
        self._check("update", kind, meta["name"])
        key = (kind, meta.get("namespace"), meta["name"])
        if key not in self.objects:
            raise ResourceNotFoundError(kind, key[1], key[2])
        stored = copy.deepcopy(body)
        stored["metadata"]["resourceVersion"] = self._next_version()
        self.objects[key] = stored
        return copy.deepcopy(stored)

    def delete(self, kind: str, namespace: str | None, name: str) -> None:
        self._check("delete", kind, name)
        try:
            del self.objects[(kind, namespace, name)]
        except KeyError:
            raise ResourceNotFoundError(kind, namespace, name) from None

    def namespace_exists(self, name: str) -> bool:
        self._check("namespace_exists", "Namespace", name)
        return name in self.namespaces

    def annotate(self, kind: str, namespace: str, name: str, annotations: dict[str, str]) -> None:
        self._check("annotate", kind, name)
        obj = self.objects.get((kind, namespace, name))
        if obj is None:
            raise ResourceNotFoundError(kind, namespace, name)
        obj["metadata"].setdefault("annotations", {}).update(annotations)

    # Helpers simulating cert-manager

    def put(self, kind: str, body: dict[str, Any]) -> None:
        meta = body["metadata"]
        self.objects[(kind, meta.get("namespace"), meta["name"])] = copy.deepcopy(body)

    def find(self, kind: str, namespace: str | None, name: str) -> dict[str, Any] | None:
        return self.objects.get((kind, namespace, name))

    def names(self, kind: str, namespace: str | None = "default") -> list[str]:
        return sorted(n for (k, ns, n) in self.objects if k == kind and ns == namespace)

    def created(self) -> list[tuple[str, str]]:
        """(kind, name) of every successful create, in call order."""
        return [(kind, name) for op, kind, name in self.calls if op == "create"]

    def set_ready(self, kind: str, namespace: str, name: str, ready: bool = True) -> None:
        obj = self.objects[(kind, namespace, name)]
        obj["status"] = {"conditions": [{"type": "Ready", "status": "True" if ready else "False"}]}

    def issue(self, namespace: str, name: str, ready: bool = True) -> None:
        """Act like cert-manager finishing a Certificate: mark it Ready and write its Secret."""
        self.set_ready(KIND_CERTIFICATE, namespace, name, ready)
        self.put(
            KIND_SECRET,
            {
                "apiVersion": "v1",
                "kind": KIND_SECRET,
                "metadata": {"name": name, "namespace": namespace},
                "type": "kubernetes.io/tls",
                "data": {
                    "ca.crt": b64(f"ca-of-{name}"),
                    "tls.crt": b64(f"cert-of-{name}"),
                    "tls.key": b64(f"key-of-{name}"),
                },
            },
        )

    def issue_all(self, namespace: str = "default") -> None:
        """Issue every Certificate and mark every Issuer Ready."""
        for kind, ns, name in list(self.objects):
            if ns != namespace:
                continue
            if kind == KIND_CERTIFICATE:
                self.issue(ns, name)
            elif kind == KIND_ISSUER:
                self.set_ready(KIND_ISSUER, ns, name)


def make_certificate_set(
    name: str = "cluster-a",
    namespace: str = "default",
    environment: str = "client",
    kubeconfig: bool = False,
    argocd_cluster: bool = False,
    endpoint: str = "",
    issuer_name: str = "root-issuer",
    issuer_ref_oidc: dict[str, str] | None = None,
    finalizers: tuple[str, ...] = (FINALIZER,),
    generation: int = 1,
    labels: dict[str, str] | None = None,
    annotations: dict[str, str] | None = None,
) -> dict[str, Any]:
    spec: dict[str, Any] = {
        "environment": environment,
        "issuerRef": {"name": issuer_name, "kind": "ClusterIssuer", "apiVersion": "cert-manager.io/v1"},
        "kubeconfig": kubeconfig,
        "argocdCluster": argocd_cluster,
    }
    if endpoint:
        spec["kubeconfigEndpoint"] = endpoint
    if issuer_ref_oidc is not None:
        spec["issuerRefOidc"] = issuer_ref_oidc
    return {
        "apiVersion": API_GROUP_VERSION,
        "kind": KIND_CERTIFICATE_SET,
        "metadata": {
            "name": name,
            "namespace": namespace,
            "uid": f"uid-{name}",
            "generation": generation,
            "labels": dict(labels or {}),
            "annotations": dict(annotations or {}),
            "finalizers": list(finalizers),
        },
        "spec": spec,
    }


class Harness:
    """Runs the engine the way kopf would: one patch per attempt, applied afterwards."""

    def __init__(self, store: FakeStore, config: OperatorConfig, body: dict[str, Any]):
        self.store = store
        self.config = config
        self.body = body
        self.events: list[tuple[str, str, str]] = []
        self.patch = kopf.Patch()

    def events_sink(self, reason: str, message: str, type_: str = "Normal") -> None:
        self.events.append((reason, message, type_))

    def reconcile(self) -> ReconcileResult:
        """Run one attempt; the patch is applied even when the attempt raises."""
        self.patch = kopf.Patch()
        reconciler = CertificateSetReconciler(self.store, self.config, events=self.events_sink)
        try:
            return reconciler.reconcile(
                copy.deepcopy(self.body),
                copy.deepcopy(self.body.get("status") or {}),
                self.patch,
            )
        finally:
            self._apply(self.patch)

    def _apply(self, patch: kopf.Patch) -> None:
        if "status" in patch:
            self.body.setdefault("status", {}).update(copy.deepcopy(dict(patch["status"])))
        metadata = patch.get("metadata") or {}
        if "finalizers" in metadata:
            self.body["metadata"]["finalizers"] = list(metadata["finalizers"] or [])

    def update_spec(self, **changes: Any) -> None:
        """Change the spec and bump the generation, like the API server would."""
        self.body["spec"].update(changes)
        self.body["metadata"]["generation"] += 1

    def condition(self, condition_type: str) -> dict[str, Any] | None:
        for cond in (self.body.get("status") or {}).get("conditions") or []:
            if cond["type"] == condition_type:
                return cond
        return None

    def converge(self, max_attempts: int = 10) -> ReconcileResult:
        """Reconcile, issuing certificates between attempts, until done."""
        for _ in range(max_attempts):
            result = self.reconcile()
            if result.done:
                return result
            self.store.issue_all(self.body["metadata"]["namespace"])
        raise AssertionError("CertificateSet did not converge")


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def config() -> OperatorConfig:
    return OperatorConfig(namespace="default")


@pytest.fixture
def make_body() -> Callable[..., dict[str, Any]]:
    return make_certificate_set


@pytest.fixture
def harness(store: FakeStore, config: OperatorConfig) -> Callable[..., Harness]:
    def factory(body: dict[str, Any] | None = None, config_override: OperatorConfig | None = None, **kwargs: Any) -> Harness:
        return Harness(store, config_override or config, body or make_certificate_set(**kwargs))

    return factory


@pytest.fixture
def argocd_namespace(store: FakeStore) -> str:
    store.namespaces.add(DEFAULT_ARGOCD_NAMESPACE)
    return DEFAULT_ARGOCD_NAMESPACE
