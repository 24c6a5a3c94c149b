"""
Emotion classifier implementations and the registry used to pick one
from configuration.
"""

from typing import Any, Callable, Dict

from tonescope.classifiers.filename_heuristic import FilenameHeuristicClassifier, match_label
from tonescope.core.classifier_base import Classifier
from tonescope.utils.errors import ConfigurationError

# name -> factory taking the "inference" config section
CLASSIFIERS: Dict[str, Callable[[Dict[str, Any]], Classifier]] = {
    "filename_heuristic": lambda cfg: FilenameHeuristicClassifier(seed=cfg.get("seed")),
}


def register_classifier(name: str, factory: Callable[[Dict[str, Any]], Classifier]) -> None:
    """Make a classifier selectable by name through inference.classifier."""
    CLASSIFIERS[name] = factory


def create_classifier(config: Dict[str, Any]) -> Classifier:
    """
    Create the classifier named in configuration.

    Args:
        config: "inference" configuration section

    Returns:
        Classifier: Configured classifier

    Raises:
        ConfigurationError: If the name is not registered
    """
    name = config.get("classifier", "filename_heuristic")
    factory = CLASSIFIERS.get(name)
    if factory is None:
        raise ConfigurationError(
            f"Unknown classifier {name!r}. Available: {', '.join(sorted(CLASSIFIERS))}",
            config_key="inference.classifier"
        )
    return factory(config)


__all__ = [
    "FilenameHeuristicClassifier",
    "match_label",
    "CLASSIFIERS",
    "register_classifier",
    "create_classifier",
]
