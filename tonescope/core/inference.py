"""
Emotion inference pipeline for ToneScope.

Runs a classifier over the active AudioSource after a fixed processing
delay and publishes the result. Every request is tagged with the source
generation and its own request number; a result is applied only if both
still identify the latest request for the active source.
"""

import asyncio
import logging
import time
from dataclasses import replace
from typing import Any, Awaitable, Callable, Dict, Optional

from tonescope.core.classifier_base import Classifier
from tonescope.core.media import MediaResourceManager
from tonescope.core.models import AudioSource, EmotionResult
from tonescope.core.observable import ObservableValue
from tonescope.utils.logging import source_logger

ANALYSIS_LATENCY: float = 1.5  # seconds


class EmotionInferencePipeline:
    """
    Asynchronous front end for a Classifier.

    Publishes two streams: ``result`` (latest EmotionResult or None) and
    ``is_analyzing``.
    """

    def __init__(
        self,
        classifier: Classifier,
        media: MediaResourceManager,
        latency: float = ANALYSIS_LATENCY,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """
        Initialize pipeline.

        Args:
            classifier: Classifier producing EmotionResults
            media: Manager that owns the active source
            latency: Minimum seconds each analysis takes
            sleep: Awaitable delay function
        """
        self.classifier = classifier
        self.media = media
        self.latency = latency
        self._sleep = sleep
        self.result: ObservableValue[Optional[EmotionResult]] = ObservableValue(None, "emotion_result")
        self.is_analyzing: ObservableValue[bool] = ObservableValue(False, "is_analyzing")
        self._in_flight = 0
        self._request_id = 0
        self.logger = logging.getLogger('inference')

    async def analyze(self, source: Optional[AudioSource] = None) -> Optional[EmotionResult]:
        """
        Classify ``source`` (the active source by default).

        Failures are logged and leave the result unset. A result whose
        source was replaced, or that was overtaken by a newer request,
        is discarded.

        Returns:
            EmotionResult if it was applied, None otherwise
        """
        if source is None:
            source = self.media.current
        if source is None:
            self.logger.debug("analyze() ignored: nothing loaded")
            return None

        self._request_id += 1
        request_id = self._request_id
        generation = source.generation
        log = source_logger('inference', source)

        self._in_flight += 1
        self.is_analyzing.set(True)
        start_time = time.perf_counter()

        try:
            log.debug(f"Analysis started (request {request_id})")
            await self._sleep(self.latency)

            if not self._is_applicable(generation, request_id):
                log.info(f"Discarding stale analysis (request {request_id})")
                return None

            result = self.classifier.classify(source)

        except Exception as e:
            log.error(f"Emotion analysis failed: {e}")
            return None

        finally:
            self._in_flight -= 1
            if self._in_flight == 0:
                self.is_analyzing.set(False)

        # Results always carry the identity of the source they describe
        result = replace(result, generation=generation, source_name=source.name)
        self.result.set(result)
        log.info(
            f"Analysis complete in {time.perf_counter() - start_time:.3f}s: "
            f"{result.primary.value} ({result.confidence_percent}%)"
        )
        return result

    def clear(self) -> None:
        """Forget the current result."""
        self.result.set(None)

    def _is_applicable(self, generation: int, request_id: int) -> bool:
        return self.media.is_current(generation) and request_id == self._request_id


def create_inference_pipeline(
    config: Dict[str, Any],
    media: MediaResourceManager,
    classifier: Optional[Classifier] = None,
) -> EmotionInferencePipeline:
    """
    Factory function to create the pipeline from configuration.

    Args:
        config: "inference" configuration section
        media: Manager that owns the active source
        classifier: Classifier to use instead of the configured one
    """
    if classifier is None:
        from tonescope.classifiers import create_classifier
        classifier = create_classifier(config)

    return EmotionInferencePipeline(
        classifier=classifier,
        media=media,
        latency=config.get('latency', ANALYSIS_LATENCY),
    )
