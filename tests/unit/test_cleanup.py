"""Tests for finalizer handling and registration Secret cleanup."""

from __future__ import annotations

from unittest.mock import MagicMock

import kopf
import pytest

from certificate_set_operator.cleanup import FinalizerManager, registration_owned_by
from certificate_set_operator.constants import (
    ANNOTATION_OWNER,
    EVENT_REASON_CLEANUP_COMPLETED,
    EVENT_REASON_SECRET_DELETED,
    FINALIZER,
    KIND_SECRET,
)
from certificate_set_operator.models import CertificateSet


@pytest.fixture
def events():
    return MagicMock()


@pytest.fixture
def manager(store, events):
    return FinalizerManager(store, "beget-argocd", events)


def _registration_secret(owner: str | None = None) -> dict:
    annotations = {ANNOTATION_OWNER: owner} if owner else {}
    return {
        "metadata": {"name": "cluster-a-argocd-cluster", "namespace": "beget-argocd", "annotations": annotations},
        "data": {},
    }


class TestFinalizers:
    """Test ensure_finalizer and remove_finalizer."""

    def test_ensure_adds(self, manager, make_body):
        cs = CertificateSet.from_body(make_body(finalizers=()))
        patch = kopf.Patch()

        assert manager.ensure_finalizer(cs, patch) is True
        assert patch["metadata"]["finalizers"] == [FINALIZER]

    def test_ensure_noop_when_present(self, manager, make_body):
        cs = CertificateSet.from_body(make_body())
        patch = kopf.Patch()

        assert manager.ensure_finalizer(cs, patch) is False
        assert "metadata" not in patch

    def test_remove_keeps_others(self, manager, make_body):
        cs = CertificateSet.from_body(make_body(finalizers=("example.com/other", FINALIZER)))
        patch = kopf.Patch()

        assert manager.remove_finalizer(cs, patch) is True
        assert patch["metadata"]["finalizers"] == ["example.com/other"]

    def test_remove_last_clears_list(self, manager, make_body):
        cs = CertificateSet.from_body(make_body())
        patch = kopf.Patch()

        manager.remove_finalizer(cs, patch)

        assert patch["metadata"]["finalizers"] is None


class TestRegistrationOwnership:
    def test_owner_match(self, make_body):
        cs = CertificateSet.from_body(make_body())

        assert registration_owned_by(_registration_secret("default/cluster-a"), cs) is True
        assert registration_owned_by(_registration_secret("other/cluster-a"), cs) is False

    def test_unannotated_secret_is_adopted(self, make_body):
        cs = CertificateSet.from_body(make_body())

        assert registration_owned_by(_registration_secret(), cs) is True


class TestCleanup:
    """Test delete_registration_secret and cleanup."""

    def test_deletes_owned_secret(self, manager, store, events, make_body):
        store.put(KIND_SECRET, _registration_secret("default/cluster-a"))
        cs = CertificateSet.from_body(make_body())

        assert manager.delete_registration_secret(cs) is True
        assert store.find(KIND_SECRET, "beget-argocd", "cluster-a-argocd-cluster") is None
        events.assert_called_once()
        assert events.call_args[0][0] == EVENT_REASON_SECRET_DELETED

    def test_missing_secret_is_success(self, manager, make_body):
        cs = CertificateSet.from_body(make_body())

        assert manager.delete_registration_secret(cs) is False

    def test_foreign_secret_left_alone(self, manager, store, make_body):
        store.put(KIND_SECRET, _registration_secret("other/cluster-a"))
        cs = CertificateSet.from_body(make_body())

        assert manager.delete_registration_secret(cs) is False
        assert store.find(KIND_SECRET, "beget-argocd", "cluster-a-argocd-cluster") is not None

    def test_cleanup_is_idempotent(self, manager, store, events, make_body):
        store.put(KIND_SECRET, _registration_secret("default/cluster-a"))
        cs = CertificateSet.from_body(make_body())

        manager.cleanup(cs)
        manager.cleanup(cs)

        assert store.find(KIND_SECRET, "beget-argocd", "cluster-a-argocd-cluster") is None
        reasons = [call[0][0] for call in events.call_args_list]
        assert reasons == [EVENT_REASON_SECRET_DELETED, EVENT_REASON_CLEANUP_COMPLETED, EVENT_REASON_CLEANUP_COMPLETED]

    def test_delete_error_propagates(self, manager, store, make_body):
        store.put(KIND_SECRET, _registration_secret("default/cluster-a"))
        store.fail_on[("delete", KIND_SECRET)] = RuntimeError("forbidden")
        cs = CertificateSet.from_body(make_body())

        with pytest.raises(RuntimeError):
            manager.cleanup(cs)
