"""Resource store interface used by the reconciliation engine."""

from __future__ import annotations

from typing import Any, Protocol


class ResourceStore(Protocol):
    """Protocol defining typed access to Kubernetes objects.

    Objects are plain dicts in their API (camelCase) form.
    """

    def get(self, kind: str, namespace: str | None, name: str) -> dict[str, Any]:
        """Read an object.

        Raises:
            ResourceNotFoundError: If the object does not exist
        """
        ...

    def create(self, kind: str, body: dict[str, Any]) -> dict[str, Any]:
        """Create an object.

        Raises:
            ResourceAlreadyExistsError: If an object with that name exists
        """
        ...

    def update(self, kind: str, body: dict[str, Any]) -> dict[str, Any]:
        """Replace an object; ``body`` carries the resourceVersion it was read at."""
        ...

    def delete(self, kind: str, namespace: str | None, name: str) -> None:
        """Delete an object.

        Raises:
            ResourceNotFoundError: If the object does not exist
        """
        ...

    def namespace_exists(self, name: str) -> bool:
        """Check whether a namespace exists."""
        ...

    def annotate(self, kind: str, namespace: str, name: str, annotations: dict[str, str]) -> None:
        """Merge-patch annotations onto an object; raises ResourceNotFoundError if it is gone."""
        ...
