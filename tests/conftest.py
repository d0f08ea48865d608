"""
Shared fixtures.

The environment is prepared before any `intent_service` import because the
settings and the module-level application are created at import time.
"""

import os

os.environ.setdefault("API_PASSWORD", "test-password")
os.environ.setdefault("CATALOG_BACKEND", "memory")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import copy

import numpy as np
import pytest

from intent_service.config import Settings
from intent_service.domain.models.engine_state import EngineState
from intent_service.domain.models.intent import Catalog
from intent_service.domain.models.trained_model import TrainedModel
from intent_service.domain.services.retraining_orchestrator import RetrainingOrchestrator
from intent_service.infrastructure.ai.intent.model_store import FileModelStore
from intent_service.infrastructure.ai.intent.trainer import IntentTrainer

PASSWORD = "test-password"

GREETING_CATALOG = {
    "intents": [
        {"tag": "greet", "patterns": ["hi", "hello"], "responses": ["Hello!"]},
        {"tag": "default", "patterns": ["x"], "responses": ["Sorry?"]},
    ]
}

SUPPORT_CATALOG = {
    "intents": [
        {
            "tag": "greet",
            "patterns": ["hi there", "hello", "good morning", "hey"],
            "responses": ["Hello!", "Hi, how can I help?"],
        },
        {
            "tag": "goodbye",
            "patterns": ["bye", "see you later", "goodbye", "talk to you soon"],
            "responses": ["Goodbye!"],
        },
        {
            "tag": "thanks",
            "patterns": ["thanks a lot", "thank you", "many thanks"],
            "responses": ["You're welcome."],
        },
        {
            "tag": "default",
            "patterns": ["blah", "what"],
            "responses": ["Sorry, I did not get that."],
        },
    ]
}


class CountingTrainer(IntentTrainer):
    """Trainer recording every catalog it was asked to train on."""

    def __init__(self, config=None):
        super().__init__(config or {"random_state": 0})
        self.calls = []

    def train(self, catalog, fingerprint=None):
        self.calls.append(fingerprint)
        return super().train(catalog, fingerprint=fingerprint)


class StubNetwork:
    """Fitted-estimator stand-in returning fixed probabilities."""

    def __init__(self, probabilities):
        self.probabilities = np.asarray([probabilities], dtype=np.float64)
        self.classes_ = np.arange(len(probabilities))

    def predict_proba(self, features):
        return self.probabilities


@pytest.fixture
def greeting_document():
    return copy.deepcopy(GREETING_CATALOG)


@pytest.fixture
def support_document():
    return copy.deepcopy(SUPPORT_CATALOG)


@pytest.fixture
def greeting_catalog():
    return Catalog.model_validate(GREETING_CATALOG)


@pytest.fixture
def support_catalog():
    return Catalog.model_validate(SUPPORT_CATALOG)


@pytest.fixture
def trainer():
    return CountingTrainer()


@pytest.fixture(scope="session")
def support_model():
    """Model trained once on the support catalog."""
    catalog = Catalog.model_validate(SUPPORT_CATALOG)
    return IntentTrainer({"random_state": 0}).train(catalog, fingerprint="support")


@pytest.fixture
def model_dir(tmp_path):
    return str(tmp_path / "model")


@pytest.fixture
def model_store(model_dir):
    return FileModelStore(model_dir)


@pytest.fixture
def engine_state():
    return EngineState()


@pytest.fixture
def orchestrator(engine_state, trainer, model_store):
    orchestrator = RetrainingOrchestrator(engine_state, trainer, model_store)
    yield orchestrator
    orchestrator.stop(timeout=30)


@pytest.fixture
def settings(model_dir):
    return Settings(
        API_PASSWORD=PASSWORD,
        CATALOG_BACKEND="memory",
        MODEL_DIR=model_dir,
        TRAINING_RANDOM_SEED=0,
    )


def stub_model(probabilities, labels=("default", "greet"), vocabulary=("hello", "hi")):
    return TrainedModel(
        network=StubNetwork(probabilities),
        vocabulary=tuple(vocabulary),
        labels=tuple(labels),
        fingerprint=None,
    )
