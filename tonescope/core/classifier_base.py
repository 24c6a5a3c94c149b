"""
Classifier base interface for ToneScope.

Defines the contract every emotion classifier satisfies using Protocol
(structural subtyping), so the inference pipeline can host a filename
heuristic today and an acoustic model later without changing shape.
"""

import logging
import time
from abc import abstractmethod
from typing import Protocol

from tonescope.core.models import AudioSource, EmotionResult
from tonescope.utils.errors import AnalysisError


class Classifier(Protocol):
    """
    Protocol for all emotion classifiers.

    All classifiers must implement:
    - classify(source) -> EmotionResult
    - name property
    - version property

    A class doesn't need to inherit from Classifier to be compatible;
    it just needs the required members.
    """

    @property
    def name(self) -> str:
        """Classifier name (e.g., 'filename_heuristic')."""
        ...

    @property
    def version(self) -> str:
        """Classifier version for result tracking."""
        ...

    def classify(self, source: AudioSource) -> EmotionResult:
        """
        Classify the emotional tone of a source.

        Args:
            source: AudioSource to classify

        Returns:
            EmotionResult: Primary emotion, confidence and optional secondary

        Raises:
            AnalysisError: If classification fails
        """
        ...


class BaseClassifier:
    """
    Optional base class providing timing, logging and error wrapping.

    Uses Template Method pattern - classify() provides the template,
    subclasses implement _classify_impl().
    """

    def __init__(self, name: str, version: str):
        """
        Initialize classifier with name and version.

        Args:
            name: Unique classifier name
            version: Version string for tracking
        """
        self._name = name
        self._version = version
        self.logger = logging.getLogger(f"classifier.{name}")

    @property
    def name(self) -> str:
        return self._name

    @property
    def version(self) -> str:
        return self._version

    def classify(self, source: AudioSource) -> EmotionResult:
        """
        Template method with timing and error handling.

        Raises:
            AnalysisError: If classification fails for any reason
        """
        start_time = time.perf_counter()

        try:
            self.logger.debug(f"Classifying: {source.name}")

            result = self._classify_impl(source)

            elapsed = time.perf_counter() - start_time
            self.logger.info(
                f"Classified {source.name} as {result.primary.value} "
                f"({result.confidence:.2f}) in {elapsed:.3f}s"
            )
            return result

        except AnalysisError:
            raise

        except Exception as e:
            self.logger.error(f"Classification failed: {e}")
            raise AnalysisError(
                f"{self.name} classification failed: {e}",
                classifier_name=self.name,
                original_error=e
            ) from e

    @abstractmethod
    def _classify_impl(self, source: AudioSource) -> EmotionResult:
        """Subclasses implement actual classification logic."""
        raise NotImplementedError
