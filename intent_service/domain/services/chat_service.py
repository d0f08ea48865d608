"""
Service answering chat messages with the response of the predicted intent.
"""

from typing import Any, Callable, Dict, Optional, Sequence
import random

from intent_service.domain.models.engine_state import EngineState
from intent_service.infrastructure.ai.intent.intent_classifier import IntentClassifier
from intent_service.utils.exceptions import (
    InvalidRequestError,
    ModelNotReadyError,
    UnknownIntentError
)
from intent_service.utils.logger import get_logger

ResponseChooser = Callable[[Sequence[str]], str]


class ChatService:
    """
    Service classifying utterances against the currently served model.
    """

    def __init__(
        self,
        state: EngineState,
        classifier: IntentClassifier,
        chooser: Optional[ResponseChooser] = None
    ):
        """
        Initialize the chat service with dependencies.

        Args:
            state: Runtime state holding the served snapshot
            classifier: Classifier applying the confidence floor
            chooser: Picks one response out of an intent's responses;
                uniform random choice by default
        """
        self.state = state
        self.classifier = classifier
        self.chooser = chooser or random.choice
        self.logger = get_logger(__name__)

    def classify(self, utterance: Optional[str]) -> Dict[str, Any]:
        """
        Answer a user utterance.

        Args:
            utterance: Text sent by the user

        Returns:
            The chosen response and the prediction confidence (2 decimals)

        Raises:
            InvalidRequestError: If the utterance is missing or blank
            ModelNotReadyError: If no model and catalog are being served
            UnknownIntentError: If the predicted tag is not in the catalog
        """
        if not isinstance(utterance, str) or not utterance.strip():
            raise InvalidRequestError('Invalid request: "message" key is required.')

        # One snapshot per request keeps model and catalog consistent
        snapshot = self.state.snapshot
        if not snapshot.is_serving:
            raise ModelNotReadyError(details={"status": self.state.status.value})

        prediction = self.classifier.predict(snapshot.model, utterance)
        intent = snapshot.catalog.find_intent(prediction.tag)
        if intent is None or not intent.responses:
            self.logger.error(
                f"Predicted tag '{prediction.tag}' has no usable intent in the active catalog",
                extra={"nominal_tag": prediction.nominal_tag}
            )
            raise UnknownIntentError(prediction.tag)

        self.logger.info(
            f"Classified message as {prediction.tag} ({prediction.confidence:.2f})",
            extra={"nominal_tag": prediction.nominal_tag, "fallback": prediction.fallback}
        )
        return {
            "response": self.chooser(intent.responses),
            "confidence": round(prediction.confidence, 2),
        }
