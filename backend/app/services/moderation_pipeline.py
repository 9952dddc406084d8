"""Two-stage content moderation: local word filter, then external classifier.

The local filter always runs first. A local hit short-circuits, so the
classifier is never called for content we can already reject. The
classifier stage is skipped when unconfigured and degrades to the local
verdict when it returns no opinion.
"""

from __future__ import annotations

import logging

from backend.app.core.logging import log_event
from backend.app.core.settings import Settings
from backend.app.models.moderation import (
    ExternalFlagged,
    ModerationPassed,
    ModerationResult,
)
from backend.app.services.local_filter import LocalFilter, build_local_filter
from backend.app.services.toxicity_classifier import (
    ToxicityClassifier,
    get_classifier,
)

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.70


class ModerationPipeline:
    """Immutable after construction; shared across requests."""

    def __init__(
        self,
        local_filter: LocalFilter,
        classifier: ToxicityClassifier | None = None,
        *,
        threshold: float = DEFAULT_THRESHOLD,
    ) -> None:
        self.local_filter = local_filter
        self.classifier = classifier
        self.threshold = threshold

    def evaluate(self, name: str, description: str) -> ModerationResult:
        local = self.local_filter.check(name, description)
        if local is not None:
            log_event(
                logger, "warning", "moderation_flagged",
                method="local",
                field=local.flagged_field,
                name_len=len(name),
                description_len=len(description),
            )
            return local

        if self.classifier is None:
            return ModerationPassed(method="local")

        scores = self.classifier.classify(f"{name} {description}")
        if scores is None:
            return ModerationPassed(method="local")

        for attribute, value in scores.items():
            if value >= self.threshold:
                pct = int(value * 100 + 0.5)
                log_event(
                    logger, "warning", "moderation_flagged",
                    method="external", attribute=attribute, pct=pct,
                )
                return ExternalFlagged(
                    reason=f"{attribute} score {pct}%",
                    scores=scores,
                )

        return ModerationPassed(method="all", scores=scores)


def build_moderation_pipeline(config: Settings) -> ModerationPipeline:
    """Compile the word lists and pick the classifier. Call once at startup."""
    local_filter = build_local_filter()
    pipeline = ModerationPipeline(local_filter, get_classifier(config))
    logger.info(
        "Moderation pipeline ready: patterns=%d classifier=%s",
        len(local_filter.patterns),
        "configured" if pipeline.classifier is not None else "none",
    )
    return pipeline
