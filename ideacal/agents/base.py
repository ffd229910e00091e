from __future__ import annotations

from abc import ABC, abstractmethod

from ideacal.specs.models.domain import GenerationParams, IdeaPayload


class IdeaGenerator(ABC):
    """Abstract base class for anything that turns parameters into an idea.

    Provides a standard ``run`` interface and support for attaching a
    ``batch_id`` used for logging.
    """

    def __init__(self) -> None:
        self._batch_id: str | None = None

    def with_batch(self, batch_id: str) -> "IdeaGenerator":
        """Attach a batchId for downstream logging."""

        self._batch_id = batch_id
        return self

    @abstractmethod
    def run(self, params: GenerationParams) -> IdeaPayload:
        """Produce one idea payload or raise."""


__all__ = ["IdeaGenerator"]
