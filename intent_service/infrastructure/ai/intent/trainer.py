from typing import Any, Dict, List, Optional, Tuple
import logging
import time
import warnings

import numpy as np
from sklearn.dummy import DummyClassifier
from sklearn.exceptions import ConvergenceWarning
from sklearn.neural_network import MLPClassifier

from intent_service.domain.models.intent import Catalog
from intent_service.domain.models.trained_model import TrainedModel
from intent_service.infrastructure.ai.intent.vocabulary import bag_of_words, build_vocabulary
from intent_service.utils.exceptions import TrainingDataError


class IntentTrainer:
    """
    Trains the bag-of-words intent network from a catalog.

    The network is a small dense classifier (two ReLU hidden layers and a
    softmax output) fitted with Adam on shuffled mini-batches for a fixed
    number of epochs. The network has no dropout layers; overfitting is
    held back by an L2 weight penalty (`alpha`) instead.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """
        Initialize the trainer with configuration.

        Args:
            config: Dictionary of training hyperparameters
        """
        self.logger = logging.getLogger(__name__)
        config = config or {}
        self.epochs = config.get("epochs", 200)
        self.batch_size = config.get("batch_size", 5)
        self.hidden_layer_sizes = tuple(config.get("hidden_layer_sizes", (128, 64)))
        self.alpha = config.get("alpha", 1e-4)
        self.learning_rate = config.get("learning_rate", 1e-3)
        self.random_state = config.get("random_state")

    def build_training_set(self, catalog: Catalog) -> Tuple[np.ndarray, np.ndarray, Tuple[str, ...], Tuple[str, ...]]:
        """
        Encode every (tag, pattern) pair of the catalog.

        Args:
            catalog: Intent catalog

        Returns:
            (features, targets, vocabulary, labels) where targets hold the
            index of each row's tag in `labels`

        Raises:
            TrainingDataError: If the catalog has no patterns or no labels
        """
        vocabulary, labels = build_vocabulary(catalog)
        label_index = {label: position for position, label in enumerate(labels)}

        phrases: List[str] = []
        targets: List[int] = []
        for intent in catalog.intents:
            for pattern in intent.patterns:
                phrases.append(pattern)
                targets.append(label_index[intent.tag])

        if not phrases:
            raise TrainingDataError(
                "Catalog contains no example phrases",
                details={"intents": len(catalog.intents)}
            )
        if not labels:
            raise TrainingDataError("Catalog contains no labels")

        features = bag_of_words(phrases, vocabulary)
        return features, np.asarray(targets, dtype=np.int64), vocabulary, labels

    def train(self, catalog: Catalog, fingerprint: Optional[str] = None) -> TrainedModel:
        """
        Train a new model on the catalog.

        Args:
            catalog: Intent catalog
            fingerprint: Fingerprint of the catalog, stored with the model

        Returns:
            The trained model bound to its vocabulary and labels

        Raises:
            TrainingDataError: If the catalog carries no training signal
        """
        features, targets, vocabulary, labels = self.build_training_set(catalog)
        self.logger.info(
            f"Data preprocessed: {len(vocabulary)} words, {len(labels)} classes, "
            f"{len(targets)} samples"
        )

        started = time.monotonic()
        network = self._create_network(len(vocabulary), len(labels), len(targets))
        with warnings.catch_warnings():
            # A fixed epoch count always ends at max_iter
            warnings.simplefilter("ignore", category=ConvergenceWarning)
            network.fit(features, targets)
        elapsed = time.monotonic() - started

        accuracy = float(network.score(features, targets))
        loss = getattr(network, "loss_", None)
        self.logger.info(
            "Training complete",
            extra={
                "network": type(network).__name__,
                "epochs": getattr(network, "n_iter_", 0),
                "loss": round(float(loss), 4) if loss is not None else None,
                "accuracy": round(accuracy, 4),
                "duration_s": round(elapsed, 2),
            }
        )

        return TrainedModel(
            network=network,
            vocabulary=vocabulary,
            labels=labels,
            fingerprint=fingerprint,
        )

    def _create_network(self, n_features: int, n_labels: int, n_samples: int):
        # A single label or an empty vocabulary leaves nothing to separate:
        # the class prior is the best possible answer.
        if n_labels < 2 or n_features == 0:
            return DummyClassifier(strategy="prior")

        return MLPClassifier(
            hidden_layer_sizes=self.hidden_layer_sizes,
            activation="relu",
            solver="adam",
            alpha=self.alpha,
            learning_rate_init=self.learning_rate,
            batch_size=min(self.batch_size, n_samples),
            max_iter=self.epochs,
            shuffle=True,
            n_iter_no_change=self.epochs,
            random_state=self.random_state,
        )
