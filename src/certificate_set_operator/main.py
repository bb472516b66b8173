"""Main entry point for the CertificateSet Operator."""

from __future__ import annotations

import logging
from typing import Any

import kopf

from . import handlers  # noqa: F401
from . import health
from . import logging as structured_logging
from .config import OperatorConfig, get_config, set_config
from .services.store import load_kubernetes_config
from .tracing import initialize_tracing

logger = logging.getLogger(__name__)


@kopf.on.startup()
def configure(settings: kopf.OperatorSettings, **_: Any) -> None:
    """Configure the operator."""
    # Set up structured JSON logging
    structured_logging.setup_structured_logging()

    # Fail startup on an invalid watch scope rather than on the first event
    config = get_config()

    load_kubernetes_config()
    initialize_tracing()

    # Annotations keep kopf's bookkeeping out of status, which the engine owns
    settings.persistence.progress_storage = kopf.AnnotationsProgressStorage()
    settings.persistence.diffbase_storage = kopf.AnnotationsDiffBaseStorage()

    settings.posting.level = 0
    settings.networking.request_timeout = config.request_timeout_seconds
    settings.execution.max_workers = 4

    health.start_metrics_server(config.metrics_port)
    health.mark_ready()
    logger.info(
        "Operator configured: clusterwide=%s namespace=%s label_selector=%s argocd_namespace=%s",
        config.clusterwide,
        config.namespace,
        config.label_selector,
        config.argocd_namespace,
    )


@kopf.on.cleanup()
def shutdown(**_: Any) -> None:
    health.mark_not_ready()


def main() -> None:
    """Run the operator with the namespace scope from the environment."""
    config = OperatorConfig.from_env()
    set_config(config)
    kopf.run(**config.kopf_run_kwargs())


if __name__ == "__main__":
    main()
