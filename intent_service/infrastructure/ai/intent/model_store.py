from datetime import datetime, timezone
from typing import Any, Dict, Optional
import json
import logging
import os
import tempfile

import joblib

from intent_service.domain.models.trained_model import TrainedModel
from intent_service.utils.exceptions import PersistenceError

MODEL_FILENAME = "model.joblib"
METADATA_FILENAME = "metadata.json"


class FileModelStore:
    """
    Persists a trained model as a directory holding the fitted network
    (`model.joblib`) and its vocabulary/label metadata (`metadata.json`).

    The metadata file is what makes an artifact loadable. It is removed
    before new parameters are written and written last, so an interrupted
    save never pairs new parameters with old metadata.
    """

    def __init__(self, model_dir: str):
        """
        Initialize the model store.

        Args:
            model_dir: Directory holding the artifact
        """
        self.logger = logging.getLogger(__name__)
        self.model_dir = model_dir
        self.model_path = os.path.join(model_dir, MODEL_FILENAME)
        self.metadata_path = os.path.join(model_dir, METADATA_FILENAME)

    def exists(self) -> bool:
        return os.path.exists(self.model_path) and os.path.exists(self.metadata_path)

    def save(self, model: TrainedModel) -> None:
        """
        Persist a trained model, replacing any previous artifact.

        Args:
            model: Model to persist

        Raises:
            PersistenceError: If either part cannot be written
        """
        metadata = {
            "words": list(model.vocabulary),
            "classes": list(model.labels),
            "fingerprint": model.fingerprint,
            "saved_at": datetime.now(timezone.utc).isoformat(),
        }
        try:
            os.makedirs(self.model_dir, exist_ok=True)
            if os.path.exists(self.metadata_path):
                os.remove(self.metadata_path)
            self._write_atomic(self.model_path, lambda path: joblib.dump(model.network, path))
            self._write_atomic(self.metadata_path, lambda path: self._dump_json(metadata, path))
        except Exception as e:
            self.logger.error(f"Failed to save model to {self.model_dir}: {str(e)}")
            raise PersistenceError(
                f"Failed to save model: {str(e)}",
                details={"model_dir": self.model_dir}
            ) from e

        self.logger.info(
            f"Saved intent model to {self.model_dir}",
            extra={"words": len(model.vocabulary), "classes": len(model.labels)}
        )

    def load(self) -> Optional[TrainedModel]:
        """
        Load the persisted model.

        Returns:
            The model, or None when no complete artifact exists
        """
        if not self.exists():
            self.logger.info(f"No saved model found in {self.model_dir}")
            return None

        try:
            with open(self.metadata_path, "r", encoding="utf-8") as f:
                metadata = json.load(f)
            network = joblib.load(self.model_path)
            model = TrainedModel(
                network=network,
                vocabulary=tuple(metadata["words"]),
                labels=tuple(metadata["classes"]),
                fingerprint=metadata.get("fingerprint"),
            )
            self._verify(model)
        except Exception as e:
            self.logger.error(f"Could not load saved model from {self.model_dir}: {str(e)}")
            return None

        self.logger.info(
            f"Loaded intent model from {self.model_dir}",
            extra={"words": model.input_size, "classes": model.output_size}
        )
        return model

    def clear(self) -> None:
        """Remove the artifact, metadata first."""
        for path in (self.metadata_path, self.model_path):
            if os.path.exists(path):
                os.remove(path)

    @staticmethod
    def _verify(model: TrainedModel) -> None:
        classes = getattr(model.network, "classes_", None)
        if classes is None or not hasattr(model.network, "predict_proba"):
            raise ValueError("Persisted network is not a fitted classifier")
        if any(int(c) < 0 or int(c) >= model.output_size for c in classes):
            raise ValueError("Persisted network outputs do not match the label set")
        n_features = getattr(model.network, "n_features_in_", None)
        if n_features is not None and n_features != model.input_size:
            raise ValueError("Persisted network inputs do not match the vocabulary")

    @staticmethod
    def _dump_json(data: Dict[str, Any], path: str) -> None:
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f)

    def _write_atomic(self, target: str, writer) -> None:
        fd, temp_path = tempfile.mkstemp(
            dir=self.model_dir,
            prefix=f".{os.path.basename(target)}.",
            suffix=".tmp"
        )
        os.close(fd)
        try:
            writer(temp_path)
            os.replace(temp_path, target)
        finally:
            if os.path.exists(temp_path):
                os.remove(temp_path)
