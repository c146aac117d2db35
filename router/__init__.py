"""Router module for prompt intent classification."""

from .classifier import IntentClassifier, detect_intent

__all__ = [
    "IntentClassifier",
    "detect_intent",
]
