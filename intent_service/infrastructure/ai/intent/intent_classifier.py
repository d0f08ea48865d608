import logging

import numpy as np

from intent_service.domain.models.intent import Prediction
from intent_service.domain.models.trained_model import TrainedModel
from intent_service.infrastructure.ai.intent.vocabulary import encode


class IntentClassifier:
    """
    Classifies user intent from text input with a trained model.

    Predictions whose top probability falls below the confidence
    threshold are redirected to the default intent.
    """

    def __init__(self, threshold: float = 0.7, default_tag: str = "default"):
        """
        Initialize the intent classifier.

        Args:
            threshold: Minimum top-class probability accepted as-is
            default_tag: Tag served when the threshold is not met
        """
        self.logger = logging.getLogger(__name__)
        self.threshold = threshold
        self.default_tag = default_tag

    def probabilities(self, model: TrainedModel, text: str) -> np.ndarray:
        """
        Compute the probability of every label for a text.

        Args:
            model: Trained model
            text: Input text

        Returns:
            Vector aligned with `model.labels`
        """
        features = encode(text, model.vocabulary).reshape(1, -1)
        raw = model.network.predict_proba(features)[0]

        # The estimator orders its columns by the label indices it has seen
        probabilities = np.zeros(model.output_size, dtype=np.float64)
        for column, label_index in enumerate(model.network.classes_):
            probabilities[int(label_index)] = raw[column]
        return probabilities

    def predict(self, model: TrainedModel, text: str) -> Prediction:
        """
        Classify the intent of the input text.

        Args:
            model: Trained model
            text: Input text to classify

        Returns:
            Prediction with the served tag and the top probability
        """
        probabilities = self.probabilities(model, text)
        best = int(np.argmax(probabilities))
        confidence = float(probabilities[best])
        nominal_tag = model.labels[best]

        if confidence < self.threshold:
            self.logger.debug(
                f"Confidence {confidence:.2f} below threshold for '{nominal_tag}', "
                f"falling back to '{self.default_tag}'"
            )
            return Prediction(
                tag=self.default_tag,
                confidence=confidence,
                nominal_tag=nominal_tag,
                fallback=True,
            )

        return Prediction(tag=nominal_tag, confidence=confidence, nominal_tag=nominal_tag)
