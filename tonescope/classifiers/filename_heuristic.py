"""
Filename heuristic emotion classifier.

Stands in for an acoustic model: it reads the clip's display name for an
emotion label and otherwise guesses. Confidence is always drawn from the
same narrow band regardless of how the label was chosen.
"""

from typing import Optional

import numpy as np

from tonescope.core.classifier_base import BaseClassifier
from tonescope.core.models import (
    ALL_EMOTIONS,
    CONFIDENCE_MAX,
    CONFIDENCE_MIN,
    NAME_MATCH_ORDER,
    AudioSource,
    Emotion,
    EmotionResult,
)


class FilenameHeuristicClassifier(BaseClassifier):
    """
    Classifies a clip from its name.

    1. The first label in NAME_MATCH_ORDER found in the lower-cased name
       is the primary; with no match the primary is random.
    2. Confidence is uniform in [CONFIDENCE_MIN, CONFIDENCE_MAX).
    3. A secondary label is drawn from the other three only when the name
       does not already contain the primary's text.
    """

    def __init__(self, seed: Optional[int] = None, rng: Optional[np.random.Generator] = None):
        """
        Args:
            seed: Seed for a fresh random generator
            rng: Generator to use instead (takes precedence over seed)
        """
        super().__init__(name="filename_heuristic", version="1.0.0")
        self.rng = rng if rng is not None else np.random.default_rng(seed)

    def _classify_impl(self, source: AudioSource) -> EmotionResult:
        name = source.name.lower()

        primary = match_label(name)
        if primary is None:
            primary = self._choose(ALL_EMOTIONS)
            self.logger.debug(f"No label in {source.name!r}, guessed {primary.value}")

        confidence = float(self.rng.uniform(CONFIDENCE_MIN, CONFIDENCE_MAX))

        secondary = None
        if primary.value not in name:
            secondary = self._choose(tuple(e for e in ALL_EMOTIONS if e != primary))

        return EmotionResult(
            primary=primary,
            confidence=confidence,
            secondary=secondary,
            generation=source.generation,
            source_name=source.name,
            classifier=f"{self.name}/{self.version}",
        )

    def _choose(self, labels) -> Emotion:
        return labels[int(self.rng.integers(len(labels)))]


def match_label(name: str) -> Optional[Emotion]:
    """Return the first emotion label contained in ``name``, if any."""
    lowered = name.lower()
    for emotion in NAME_MATCH_ORDER:
        if emotion.value in lowered:
            return emotion
    return None
