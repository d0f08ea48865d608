"""
Intent classification components.

This package provides the bag-of-words feature extraction, the training
of the intent network, its file-based persistence and the confidence
thresholded prediction used to answer chat messages.
"""

from intent_service.infrastructure.ai.intent.intent_classifier import IntentClassifier
from intent_service.infrastructure.ai.intent.model_store import FileModelStore
from intent_service.infrastructure.ai.intent.trainer import IntentTrainer

__all__ = ["IntentClassifier", "FileModelStore", "IntentTrainer"]
