"""
Strategy dispatcher.

Holds every registered extraction strategy and picks the best match for a
document: filter by supports(), sort by priority descending (registration
order breaks ties), return the first. "No strategy" is a normal outcome.
"""

import logging

from freight_intake.document_extractor.models import Document
from freight_intake.document_extractor.strategies.base import ExtractionStrategy

logger = logging.getLogger("freight.dispatcher")


class StrategyDispatcher:
    def __init__(self, strategies: list[ExtractionStrategy] | None = None):
        self._strategies: list[ExtractionStrategy] = []
        for strategy in strategies or []:
            self.register(strategy)

    def register(self, strategy: ExtractionStrategy) -> None:
        if any(s.name == strategy.name for s in self._strategies):
            raise ValueError(f"Strategy already registered: {strategy.name}")
        self._strategies.append(strategy)
        logger.debug("Registered strategy %s (priority %d)", strategy.name, strategy.priority)

    def get_supported_strategies(self, document: Document) -> list[ExtractionStrategy]:
        """All strategies that claim the document, best first."""
        candidates = [s for s in self._strategies if s.supports(document)]
        # sorted() is stable, so equal priorities keep registration order
        return sorted(candidates, key=lambda s: s.priority, reverse=True)

    def get_strategy(self, document: Document) -> ExtractionStrategy | None:
        """Best strategy for the document, or None. Never raises."""
        try:
            candidates = self.get_supported_strategies(document)
        except Exception as e:
            logger.error("Strategy selection failed for document %s: %s", document.id, e)
            return None
        if not candidates:
            logger.info(
                "No strategy supports document %s (%s, %s)",
                document.id, document.filename, document.mime_type,
            )
            return None
        return candidates[0]

    @property
    def strategies(self) -> list[ExtractionStrategy]:
        return sorted(self._strategies, key=lambda s: s.priority, reverse=True)

    def describe(self) -> list[dict]:
        return [{"name": s.name, "priority": s.priority} for s in self.strategies]
