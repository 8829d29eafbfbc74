"""Change resolution: from a subject to its recorded changes.

Delegates entirely to the history provider. No filtering or ordering
happens here; that is the version selector's job.
"""

from typing import Any

from history_explorer.core.interfaces import IHistoryProvider, IReferenceResolver
from history_explorer.core.models import Change
from history_explorer.observability import get_logger

logger = get_logger(__name__)


class ChangeResolver:
    """Obtains the changes of a live instance or of a durable reference.

    Args:
        provider: The history provider answering change queries.
        resolver: Reference resolver used to identify live instances.
    """

    def __init__(self, provider: IHistoryProvider, resolver: IReferenceResolver) -> None:
        self._provider = provider
        self._resolver = resolver

    def changes_for(self, model: Any) -> list[Change]:
        """Return the recorded changes of a live instance.

        An instance without a durable reference (for example a transient ORM
        object never persisted) has no history.

        Args:
            model: The live instance.

        Returns:
            The unordered changes, possibly empty.
        """
        if not self._resolver.has_reference(model):
            logger.debug("Instance has no reference, no history", model_type=type(model).__name__)
            return []
        reference = self._resolver.reference_of(model)
        return list(self._provider.changes_for(type(model), reference, live=model))

    def changes_for_reference(self, model_type: type, reference: str) -> list[Change]:
        """Return the recorded changes of a subject identified only by reference.

        Args:
            model_type: The subject's domain type.
            reference: The subject's durable reference.

        Returns:
            The unordered changes, possibly empty.
        """
        return list(self._provider.changes_for(model_type, reference))
