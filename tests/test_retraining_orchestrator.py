from datetime import datetime, timezone
import threading

import pytest

from intent_service.domain.models.engine_state import EngineState, EngineStatus
from intent_service.domain.services.catalog_service import parse_catalog
from intent_service.domain.services.change_detector import fingerprint
from intent_service.domain.services.retraining_orchestrator import (
    RetrainingOrchestrator,
    UpdateOutcome
)
from intent_service.infrastructure.ai.intent.model_store import FileModelStore
from intent_service.utils.exceptions import PersistenceError

from conftest import CountingTrainer


def fingerprint_of(document):
    return fingerprint(parse_catalog(document))


def with_response(document, response):
    intents = [dict(item) for item in document["intents"]]
    intents[0]["responses"] = [response]
    return {"intents": intents}


class FailingStore(FileModelStore):
    def save(self, model):
        raise PersistenceError("Failed to save model: disk full")


class ExplodingTrainer(CountingTrainer):
    def train(self, catalog, fingerprint=None):
        self.calls.append(fingerprint)
        raise RuntimeError("out of memory")


class GatedTrainer(CountingTrainer):
    """Trainer blocking its first run until released."""

    def __init__(self, state):
        super().__init__()
        self.state = state
        self.started = threading.Event()
        self.release = threading.Event()
        self.statuses = []

    def train(self, catalog, fingerprint=None):
        self.statuses.append(self.state.status)
        if not self.started.is_set():
            self.started.set()
            assert self.release.wait(timeout=30)
        return super().train(catalog, fingerprint=fingerprint)


class TestHandleUpdate:
    """One retraining cycle per notification."""

    def test_starts_cold(self, orchestrator, engine_state):
        assert orchestrator.start() == EngineStatus.COLD
        assert engine_state.snapshot.model is None

    def test_first_catalog_trains(self, orchestrator, engine_state, model_store, greeting_document):
        outcome = orchestrator.handle_update(greeting_document)

        snapshot = engine_state.snapshot
        assert outcome == UpdateOutcome.RETRAINED
        assert engine_state.status == EngineStatus.READY
        assert snapshot.is_serving
        assert snapshot.durable
        assert snapshot.fingerprint == fingerprint_of(greeting_document)
        assert snapshot.model.labels == ("default", "greet")
        assert model_store.load().fingerprint == snapshot.fingerprint

    def test_identical_catalog_trains_once(self, orchestrator, trainer, greeting_document):
        first = orchestrator.handle_update(greeting_document)
        second = orchestrator.handle_update(greeting_document)

        assert first == UpdateOutcome.RETRAINED
        assert second == UpdateOutcome.UNCHANGED
        assert len(trainer.calls) == 1
        assert orchestrator.training_runs == 1

    def test_store_native_extra_fields(self, orchestrator, engine_state, trainer, greeting_document):
        greeting_document["intents"][0]["updatedAt"] = datetime(2024, 5, 1, tzinfo=timezone.utc)

        assert orchestrator.handle_update(greeting_document) == UpdateOutcome.RETRAINED
        assert orchestrator.handle_update(greeting_document) == UpdateOutcome.UNCHANGED
        assert len(trainer.calls) == 1
        assert engine_state.snapshot.is_serving

    def test_changed_catalog_retrains(self, orchestrator, engine_state, trainer, greeting_document):
        orchestrator.handle_update(greeting_document)
        updated = with_response(greeting_document, "Hey!")

        assert orchestrator.handle_update(updated) == UpdateOutcome.RETRAINED
        assert len(trainer.calls) == 2
        assert engine_state.snapshot.catalog.find_intent("greet").responses == ["Hey!"]

    @pytest.mark.parametrize("raw", [None, {}, {"intents": "nope"}, {"intents": [{"tag": "a"}]}])
    def test_invalid_catalog_rejected(self, orchestrator, engine_state, trainer, greeting_document, raw):
        orchestrator.handle_update(greeting_document)
        before = engine_state.snapshot

        assert orchestrator.handle_update(raw) == UpdateOutcome.REJECTED
        assert engine_state.snapshot is before
        assert engine_state.last_error.startswith("Invalid catalog data")
        assert len(trainer.calls) == 1

    def test_untrainable_catalog_keeps_model(self, orchestrator, engine_state, trainer, greeting_document):
        orchestrator.handle_update(greeting_document)
        before = engine_state.snapshot
        untrainable = {"intents": [{"tag": "greet", "patterns": [], "responses": ["Hi"]}]}

        assert orchestrator.handle_update(untrainable) == UpdateOutcome.FAILED
        assert orchestrator.handle_update(untrainable) == UpdateOutcome.FAILED
        assert engine_state.snapshot is before
        assert engine_state.status == EngineStatus.READY
        assert len(trainer.calls) == 2
        assert "Training aborted" in engine_state.last_error

    def test_training_error_keeps_model(self, engine_state, model_store, greeting_document):
        orchestrator = RetrainingOrchestrator(engine_state, ExplodingTrainer(), model_store)

        assert orchestrator.handle_update(greeting_document) == UpdateOutcome.FAILED
        assert engine_state.status == EngineStatus.COLD
        assert "out of memory" in engine_state.last_error
        assert not model_store.exists()

    def test_persistence_failure_still_serves(self, engine_state, trainer, model_dir, greeting_document):
        orchestrator = RetrainingOrchestrator(engine_state, trainer, FailingStore(model_dir))

        outcome = orchestrator.handle_update(greeting_document)

        assert outcome == UpdateOutcome.RETRAINED
        assert engine_state.snapshot.is_serving
        assert not engine_state.snapshot.durable
        assert "disk full" in engine_state.last_error

    def test_superseded_run_discarded(self, engine_state, model_store, greeting_document):
        newer = with_response(greeting_document, "Hey!")
        trainer = CountingTrainer()
        orchestrator = RetrainingOrchestrator(engine_state, trainer, model_store)

        class SubmittingTrainer(CountingTrainer):
            def train(self, catalog, fingerprint=None):
                orchestrator.submit(newer)
                return super().train(catalog, fingerprint=fingerprint)

        orchestrator.trainer = SubmittingTrainer()

        assert orchestrator.handle_update(greeting_document) == UpdateOutcome.SUPERSEDED
        assert engine_state.snapshot.model is None
        assert not model_store.exists()

        orchestrator.trainer = trainer
        orchestrator.start_worker()
        try:
            assert orchestrator.wait_until_idle(timeout=60)
        finally:
            orchestrator.stop(timeout=30)

        assert engine_state.snapshot.fingerprint == fingerprint_of(newer)
        assert trainer.calls == [fingerprint_of(newer)]


class TestRestart:
    """Restoring the persisted model at startup."""

    def test_unchanged_catalog_not_retrained(self, orchestrator, model_store, greeting_document):
        orchestrator.handle_update(greeting_document)

        state = EngineState()
        trainer = CountingTrainer()
        restarted = RetrainingOrchestrator(state, trainer, model_store)

        assert restarted.start() == EngineStatus.READY
        assert state.snapshot.catalog is None
        assert not state.snapshot.is_serving

        assert restarted.handle_update(greeting_document) == UpdateOutcome.UNCHANGED
        assert state.snapshot.is_serving
        assert trainer.calls == []

    def test_artifact_without_fingerprint_retrains(self, model_store, greeting_catalog, greeting_document):
        model_store.save(CountingTrainer().train(greeting_catalog))

        state = EngineState()
        trainer = CountingTrainer()
        restarted = RetrainingOrchestrator(state, trainer, model_store)
        restarted.start()

        assert restarted.handle_update(greeting_document) == UpdateOutcome.RETRAINED
        assert trainer.calls == [fingerprint_of(greeting_document)]


class TestWorker:
    """Background processing of submitted notifications."""

    def test_processes_submissions(self, orchestrator, engine_state, greeting_document):
        orchestrator.start_worker()
        orchestrator.submit(greeting_document)

        assert orchestrator.wait_until_idle(timeout=60)
        assert engine_state.snapshot.fingerprint == fingerprint_of(greeting_document)

    def test_bursts_coalesce_to_latest(self, engine_state, model_store, greeting_document):
        trainer = GatedTrainer(engine_state)
        orchestrator = RetrainingOrchestrator(engine_state, trainer, model_store)
        second = with_response(greeting_document, "Hey!")
        third = with_response(greeting_document, "Howdy!")

        orchestrator.start_worker()
        try:
            orchestrator.submit(greeting_document)
            assert trainer.started.wait(timeout=30)
            orchestrator.submit(second)
            orchestrator.submit(third)
            trainer.release.set()

            assert orchestrator.wait_until_idle(timeout=60)
        finally:
            orchestrator.stop(timeout=30)

        assert trainer.calls == [fingerprint_of(greeting_document), fingerprint_of(third)]
        assert trainer.statuses == [EngineStatus.RETRAINING, EngineStatus.RETRAINING]
        assert engine_state.snapshot.fingerprint == fingerprint_of(third)
        assert engine_state.snapshot.catalog.find_intent("greet").responses == ["Howdy!"]
        assert engine_state.status == EngineStatus.READY

    def test_serves_previous_model_while_retraining(self, engine_state, model_store, greeting_document):
        trainer = GatedTrainer(engine_state)
        trainer.started.set()
        orchestrator = RetrainingOrchestrator(engine_state, trainer, model_store)
        orchestrator.handle_update(greeting_document)
        previous = engine_state.snapshot

        trainer.started.clear()
        orchestrator.start_worker()
        try:
            orchestrator.submit(with_response(greeting_document, "Hey!"))
            assert trainer.started.wait(timeout=30)
            assert engine_state.snapshot is previous
            assert engine_state.status == EngineStatus.RETRAINING
            trainer.release.set()
            assert orchestrator.wait_until_idle(timeout=60)
        finally:
            orchestrator.stop(timeout=30)

        assert engine_state.snapshot is not previous
        assert engine_state.status == EngineStatus.READY
