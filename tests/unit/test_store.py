"""Tests for the Kubernetes-backed resource store."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from kubernetes.client.exceptions import ApiException

from certificate_set_operator.services.store import KubernetesResourceStore
from certificate_set_operator.utils.errors import ResourceAlreadyExistsError, ResourceNotFoundError


@pytest.fixture
def core_api():
    api = MagicMock()
    api.api_client.sanitize_for_serialization.side_effect = lambda obj: {"converted": obj}
    return api


@pytest.fixture
def custom_api():
    return MagicMock()


@pytest.fixture
def store(core_api, custom_api):
    return KubernetesResourceStore(core_api=core_api, custom_api=custom_api, request_timeout=7.0)


class TestGet:
    """Test get."""

    def test_custom_object(self, store, custom_api):
        custom_api.get_namespaced_custom_object.return_value = {"kind": "Certificate"}

        assert store.get("Certificate", "default", "x-ca") == {"kind": "Certificate"}
        custom_api.get_namespaced_custom_object.assert_called_once_with(
            _request_timeout=7.0,
            group="cert-manager.io",
            version="v1",
            namespace="default",
            plural="certificates",
            name="x-ca",
        )

    def test_secret_is_serialized(self, store, core_api):
        core_api.read_namespaced_secret.return_value = "v1secret"

        assert store.get("Secret", "default", "x-ca") == {"converted": "v1secret"}
        core_api.read_namespaced_secret.assert_called_once_with(
            _request_timeout=7.0, name="x-ca", namespace="default"
        )

    def test_not_found(self, store, custom_api):
        custom_api.get_namespaced_custom_object.side_effect = ApiException(status=404)

        with pytest.raises(ResourceNotFoundError):
            store.get("Issuer", "default", "x-ca")

    def test_other_errors_propagate(self, store, core_api):
        core_api.read_namespaced_secret.side_effect = ApiException(status=500)

        with pytest.raises(ApiException):
            store.get("Secret", "default", "x-ca")


class TestCreate:
    """Test create."""

    def test_create_custom_object(self, store, custom_api):
        body = {"metadata": {"name": "x-ca", "namespace": "default"}}
        custom_api.create_namespaced_custom_object.return_value = body

        store.create("Issuer", body)

        kwargs = custom_api.create_namespaced_custom_object.call_args.kwargs
        assert kwargs["plural"] == "issuers"
        assert kwargs["namespace"] == "default"
        assert kwargs["body"] is body
        assert kwargs["field_manager"] == "certificate-set-operator"

    def test_already_exists(self, store, core_api):
        core_api.create_namespaced_secret.side_effect = ApiException(status=409)

        with pytest.raises(ResourceAlreadyExistsError):
            store.create("Secret", {"metadata": {"name": "x", "namespace": "default"}})


class TestUpdateDelete:
    """Test update and delete."""

    def test_update_secret(self, store, core_api):
        body = {"metadata": {"name": "x", "namespace": "default", "resourceVersion": "5"}}

        store.update("Secret", body)

        kwargs = core_api.replace_namespaced_secret.call_args.kwargs
        assert kwargs["name"] == "x"
        assert kwargs["body"] is body

    def test_delete_not_found(self, store, core_api):
        core_api.delete_namespaced_secret.side_effect = ApiException(status=404)

        with pytest.raises(ResourceNotFoundError):
            store.delete("Secret", "beget-argocd", "x-argocd-cluster")

    def test_delete_custom_object(self, store, custom_api):
        store.delete("Certificate", "default", "x-ca")

        assert custom_api.delete_namespaced_custom_object.call_args.kwargs["name"] == "x-ca"


class TestNamespaceAndAnnotate:
    def test_namespace_exists(self, store, core_api):
        assert store.namespace_exists("beget-argocd") is True

    def test_namespace_missing(self, store, core_api):
        core_api.read_namespace.side_effect = ApiException(status=404)

        assert store.namespace_exists("beget-argocd") is False

    def test_namespace_error_propagates(self, store, core_api):
        core_api.read_namespace.side_effect = ApiException(status=403)

        with pytest.raises(ApiException):
            store.namespace_exists("beget-argocd")

    def test_annotate(self, store, custom_api):
        store.annotate("CertificateSet", "default", "x", {"a": "b"})

        kwargs = custom_api.patch_namespaced_custom_object.call_args.kwargs
        assert kwargs["group"] == "in-cloud.io"
        assert kwargs["plural"] == "certificatesets"
        assert kwargs["body"] == {"metadata": {"annotations": {"a": "b"}}}

    def test_annotate_missing_owner(self, store, custom_api):
        custom_api.patch_namespaced_custom_object.side_effect = ApiException(status=404)

        with pytest.raises(ResourceNotFoundError):
            store.annotate("CertificateSet", "default", "x", {"a": "b"})
