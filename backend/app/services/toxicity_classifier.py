"""External toxicity classifier with a no-verdict fallback.

Classifiers
-----------
- **PerspectiveClassifier**: Google Perspective ``comments:analyze`` via
  ``httpx`` (requires ``PERSPECTIVE_API_KEY``).

A classifier returns per-attribute scores in ``[0, 1]`` or ``None``.
``None`` means "no opinion": the classifier is unreachable, timed out,
answered with a non-2xx status, or sent a payload we cannot read. It is
never an error and is never retried.
"""

from __future__ import annotations

import logging
import time
from typing import Protocol, runtime_checkable

import httpx

from backend.app.core.logging import log_event
from backend.app.core.settings import Settings

logger = logging.getLogger(__name__)

PERSPECTIVE_URL = "https://commentanalyzer.googleapis.com/v1alpha1/comments:analyze"

# Perspective attribute → score key reported in moderation results
REQUESTED_ATTRIBUTES: dict[str, str] = {
    "TOXICITY": "toxicity",
    "SEVERE_TOXICITY": "severe_toxicity",
    "IDENTITY_ATTACK": "identity_attack",
    "INSULT": "insult",
    "PROFANITY": "profanity",
}


# ---------------------------------------------------------------------------
# Classifier protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class ToxicityClassifier(Protocol):
    """Minimal interface every external classifier must satisfy."""

    @property
    def classifier_name(self) -> str: ...

    def classify(self, text: str) -> dict[str, float] | None:
        """Score *text*; ``None`` when no verdict could be obtained."""
        ...


# ---------------------------------------------------------------------------
# Perspective
# ---------------------------------------------------------------------------


class PerspectiveClassifier:
    """Calls the Perspective API once per request, without retries."""

    classifier_name: str = "perspective"

    def __init__(
        self,
        api_key: str,
        *,
        timeout_seconds: float = 5.0,
        client: httpx.Client | None = None,
    ) -> None:
        self._api_key = api_key
        self._timeout = timeout_seconds
        self._client = client

    def _post(self, payload: dict) -> httpx.Response:
        params = {"key": self._api_key}
        if self._client is not None:
            return self._client.post(
                PERSPECTIVE_URL, params=params, json=payload, timeout=self._timeout,
            )
        with httpx.Client(timeout=self._timeout) as client:
            return client.post(PERSPECTIVE_URL, params=params, json=payload)

    def classify(self, text: str) -> dict[str, float] | None:
        payload = {
            "comment": {"text": text},
            "requestedAttributes": {attr: {} for attr in REQUESTED_ATTRIBUTES},
        }
        start = time.monotonic()
        try:
            response = self._post(payload)
        except httpx.TimeoutException:
            log_event(
                logger, "warning", "classifier_unavailable",
                classifier=self.classifier_name, reason="timeout",
            )
            return None
        except httpx.HTTPError as exc:
            log_event(
                logger, "warning", "classifier_unavailable",
                classifier=self.classifier_name,
                reason="transport",
                detail=type(exc).__name__,
            )
            return None

        latency_ms = int((time.monotonic() - start) * 1000)

        if not response.is_success:
            log_event(
                logger, "warning", "classifier_unavailable",
                classifier=self.classifier_name,
                reason="http_status",
                status_code=response.status_code,
            )
            return None

        scores = _parse_scores(response)
        if scores is None:
            log_event(
                logger, "warning", "classifier_unavailable",
                classifier=self.classifier_name, reason="malformed_payload",
            )
            return None

        logger.info(
            "classifier_scored: classifier=%s latency_ms=%d text_len=%d",
            self.classifier_name,
            latency_ms,
            len(text),
        )
        return scores


def _parse_scores(response: httpx.Response) -> dict[str, float] | None:
    """Extract summary scores; attributes missing from the reply score 0."""
    try:
        body = response.json()
        attribute_scores = body["attributeScores"]
        if not isinstance(attribute_scores, dict):
            return None
        scores: dict[str, float] = {}
        for attr, key in REQUESTED_ATTRIBUTES.items():
            entry = attribute_scores.get(attr)
            value = entry["summaryScore"]["value"] if entry else 0.0
            scores[key] = float(value)
    except (ValueError, KeyError, TypeError):
        return None
    return scores


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def get_classifier(config: Settings) -> ToxicityClassifier | None:
    """Return the configured classifier, or ``None`` to skip the stage."""
    if config.perspective_api_key:
        logger.info("Toxicity classifier: Perspective")
        return PerspectiveClassifier(
            config.perspective_api_key,
            timeout_seconds=config.perspective_timeout_seconds,
        )
    logger.warning("No PERSPECTIVE_API_KEY configured, using local filter only")
    return None
