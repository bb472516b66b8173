"""Operator configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Mapping

from .constants import DEFAULT_ARGOCD_NAMESPACE, DEFAULT_REQUEUE_AFTER_SECONDS
from .utils.errors import ConfigurationError

_TRUE_VALUES = {"1", "true", "yes", "on"}

APPLY_POLICY_CREATE_IF_ABSENT = "create-if-absent"
APPLY_POLICY_CREATE_OR_UPDATE = "create-or-update"
DEFAULT_RESYNC_INTERVAL_SECONDS = 300.0


def parse_label_selector(selector: str) -> dict[str, str]:
    """Parse an equality-based label selector such as ``team=a,tier=b``.

    Raises:
        ConfigurationError: If a term is not of the form ``key=value``
    """
    labels: dict[str, str] = {}
    for term in selector.split(","):
        term = term.strip()
        if not term:
            continue
        if "!=" in term:
            raise ConfigurationError(f"Unsupported label selector term '{term}': only equality is supported")
        key, sep, value = term.partition("==") if "==" in term else term.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ConfigurationError(f"Invalid label selector term '{term}'")
        labels[key] = value.strip()
    if not labels:
        raise ConfigurationError(f"Label selector '{selector}' has no terms")
    return labels


@dataclass(frozen=True)
class OperatorConfig:
    """Runtime configuration of one operator instance."""

    clusterwide: bool = False
    namespace: str | None = None
    label_selector: dict[str, str] = field(default_factory=dict)
    argocd_namespace: str = DEFAULT_ARGOCD_NAMESPACE
    requeue_after_seconds: float = DEFAULT_REQUEUE_AFTER_SECONDS
    request_timeout_seconds: float = 30.0
    metrics_port: int = 8080
    certificate_apply_policy: str = APPLY_POLICY_CREATE_IF_ABSENT

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """Check that exactly one watch scope is configured.

        Cluster-wide watching excludes a namespace or label selector, and
        one of the two forms must be present.
        """
        scoped = bool(self.namespace) or bool(self.label_selector)
        if self.clusterwide and scoped:
            raise ConfigurationError(
                "WATCH_CLUSTERWIDE cannot be combined with WATCH_NAMESPACE or WATCH_LABEL_SELECTOR"
            )
        if not self.clusterwide and not scoped:
            raise ConfigurationError(
                "one of WATCH_CLUSTERWIDE, WATCH_NAMESPACE or WATCH_LABEL_SELECTOR must be set"
            )
        if self.requeue_after_seconds <= 0:
            raise ConfigurationError("REQUEUE_AFTER_SECONDS must be positive")
        if self.certificate_apply_policy not in (APPLY_POLICY_CREATE_IF_ABSENT, APPLY_POLICY_CREATE_OR_UPDATE):
            raise ConfigurationError(
                f"CERTIFICATE_APPLY_POLICY must be '{APPLY_POLICY_CREATE_IF_ABSENT}' "
                f"or '{APPLY_POLICY_CREATE_OR_UPDATE}', got '{self.certificate_apply_policy}'"
            )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> OperatorConfig:
        """Build the configuration from environment variables."""
        env = os.environ if environ is None else environ
        selector = env.get("WATCH_LABEL_SELECTOR", "").strip()
        try:
            return cls(
                clusterwide=env.get("WATCH_CLUSTERWIDE", "false").strip().lower() in _TRUE_VALUES,
                namespace=env.get("WATCH_NAMESPACE", "").strip() or None,
                label_selector=parse_label_selector(selector) if selector else {},
                argocd_namespace=env.get("ARGOCD_NAMESPACE", DEFAULT_ARGOCD_NAMESPACE),
                requeue_after_seconds=float(env.get("REQUEUE_AFTER_SECONDS", DEFAULT_REQUEUE_AFTER_SECONDS)),
                request_timeout_seconds=float(env.get("K8S_REQUEST_TIMEOUT_SECONDS", "30")),
                metrics_port=int(env.get("METRICS_PORT", "8080")),
                certificate_apply_policy=env.get("CERTIFICATE_APPLY_POLICY", APPLY_POLICY_CREATE_IF_ABSENT),
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid numeric setting: {e}") from e

    def matches(self, labels: Mapping[str, str] | None) -> bool:
        """Return True if an object's labels satisfy the label selector."""
        labels = labels or {}
        return all(labels.get(key) == value for key, value in self.label_selector.items())

    def kopf_run_kwargs(self) -> dict[str, Any]:
        """Namespace scope arguments for ``kopf.run``."""
        if self.namespace:
            return {"clusterwide": False, "namespaces": [self.namespace]}
        return {"clusterwide": True}


def resync_interval_from_env(environ: Mapping[str, str] | None = None) -> float:
    """Interval of the periodic resync timer.

    Read at import time of the handlers, before the operator configuration
    is validated, because kopf needs it when the timer is registered.

    Raises:
        ConfigurationError: If ``RESYNC_INTERVAL_SECONDS`` is not a positive number
    """
    env = os.environ if environ is None else environ
    raw = env.get("RESYNC_INTERVAL_SECONDS", str(DEFAULT_RESYNC_INTERVAL_SECONDS))
    try:
        interval = float(raw)
    except ValueError as e:
        raise ConfigurationError(f"Invalid RESYNC_INTERVAL_SECONDS: {raw}") from e
    if interval <= 0:
        raise ConfigurationError("RESYNC_INTERVAL_SECONDS must be positive")
    return interval


_config: OperatorConfig | None = None


def get_config() -> OperatorConfig:
    """Return the process configuration, loading it on first use."""
    global _config
    if _config is None:
        _config = OperatorConfig.from_env()
    return _config


def set_config(config: OperatorConfig | None) -> None:
    """Replace the process configuration."""
    global _config
    _config = config
