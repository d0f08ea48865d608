from datetime import datetime, timezone

import pytest

from intent_service.domain.models.intent import Catalog
from intent_service.domain.services.catalog_service import (
    CatalogService,
    merge_catalogs,
    parse_catalog
)
from intent_service.domain.services.change_detector import fingerprint, has_changed
from intent_service.infrastructure.repositories.memory_catalog_repository import InMemoryCatalogRepository
from intent_service.utils.exceptions import CatalogValidationError


def catalog(*intents):
    return Catalog.model_validate({"intents": list(intents)})


def intent(tag, patterns=("x",), responses=("r",)):
    return {"tag": tag, "patterns": list(patterns), "responses": list(responses)}


class TestParseCatalog:
    """Shape validation of raw catalog documents."""

    @pytest.mark.parametrize("raw", [None, {}, [], "intents", {"intents": "greet"}, {"items": []}])
    def test_missing_intents_array(self, raw):
        with pytest.raises(CatalogValidationError) as exc_info:
            parse_catalog(raw)

        assert exc_info.value.status_code == 400
        assert '"intents" array' in exc_info.value.message

    def test_malformed_items(self):
        with pytest.raises(CatalogValidationError) as exc_info:
            parse_catalog({"intents": [{"tag": "greet", "patterns": ["hi"]}]})

        assert exc_info.value.details["errors"]

    def test_empty_responses_rejected(self):
        with pytest.raises(CatalogValidationError):
            parse_catalog({"intents": [intent("greet", responses=())]})

    def test_extra_fields_kept(self):
        parsed = parse_catalog({"intents": [dict(intent("greet"), context=["start"])]})

        assert parsed.to_document()["intents"][0]["context"] == ["start"]

    def test_empty_catalog_is_valid(self):
        assert parse_catalog({"intents": []}).intents == []


class TestMergeCatalogs:
    """Tag-keyed merge of partial catalogs."""

    def test_incoming_replaces_whole_intent(self):
        existing = catalog(intent("greet", ["hi"], ["Hello!"]), intent("bye"))
        incoming = catalog(intent("greet", ["hey"], ["Hey!"]))

        merged = merge_catalogs(existing, incoming)

        assert merged.tags == ["greet", "bye"]
        assert merged.find_intent("greet").patterns == ["hey"]
        assert merged.find_intent("greet").responses == ["Hey!"]

    def test_new_tags_appended(self):
        merged = merge_catalogs(catalog(intent("greet")), catalog(intent("thanks"), intent("bye")))

        assert merged.tags == ["greet", "thanks", "bye"]

    def test_idempotent(self):
        existing = catalog(intent("greet"), intent("bye"))
        incoming = catalog(intent("bye", ["see you"]), intent("thanks"))

        once = merge_catalogs(existing, incoming)
        twice = merge_catalogs(once, incoming)

        assert once == twice

    def test_last_duplicate_wins(self):
        incoming = catalog(intent("greet", ["a"]), intent("greet", ["b"]))

        merged = merge_catalogs(Catalog(), incoming)

        assert merged.tags == ["greet"]
        assert merged.find_intent("greet").patterns == ["b"]

    def test_find_intent_missing(self):
        assert catalog(intent("greet")).find_intent("bye") is None


class TestCatalogService:
    """Catalog edits against the store."""

    def test_edit_on_empty_store(self):
        repository = InMemoryCatalogRepository()
        service = CatalogService(repository)

        result = service.submit_edit({"intents": [intent("greet")]})

        assert result == {"message": CatalogService.MERGE_MESSAGE}
        assert repository.read_catalog() == {"intents": [intent("greet")]}

    def test_edit_merges_with_stored(self):
        repository = InMemoryCatalogRepository({"intents": [intent("greet"), intent("bye")]})
        service = CatalogService(repository)

        service.submit_edit({"intents": [intent("bye", ["later"])]})

        stored = repository.read_catalog()["intents"]
        assert [item["tag"] for item in stored] == ["greet", "bye"]
        assert stored[1]["patterns"] == ["later"]

    def test_invalid_edit_leaves_store_untouched(self):
        original = {"intents": [intent("greet")]}
        repository = InMemoryCatalogRepository(original)
        notifications = []
        repository.subscribe(notifications.append, lambda error: None)
        service = CatalogService(repository)

        for edit in (None, {}, {"intents": {"tag": "bye"}}, {"intents": [{"tag": "bye"}]}):
            with pytest.raises(CatalogValidationError):
                service.submit_edit(edit)

        assert repository.read_catalog() == original
        assert len(notifications) == 1

    def test_malformed_store_treated_as_empty(self):
        repository = InMemoryCatalogRepository({"something": "else"})
        service = CatalogService(repository)

        assert service.read_catalog() == Catalog()
        service.submit_edit({"intents": [intent("greet")]})

        assert repository.read_catalog() == {"intents": [intent("greet")]}


class TestChangeDetector:
    """Catalog fingerprints."""

    def test_key_order_independent(self):
        first = Catalog.model_validate(
            {"intents": [{"tag": "greet", "patterns": ["hi"], "responses": ["Hello!"]}]}
        )
        second = Catalog.model_validate(
            {"intents": [{"responses": ["Hello!"], "tag": "greet", "patterns": ["hi"]}]}
        )

        assert fingerprint(first) == fingerprint(second)
        assert not has_changed(second, fingerprint(first))

    def test_content_change_detected(self):
        before = catalog(intent("greet", ["hi"], ["Hello!"]))
        after = catalog(intent("greet", ["hi"], ["Hello there!"]))

        assert fingerprint(before) != fingerprint(after)
        assert has_changed(after, fingerprint(before))

    def test_no_previous_fingerprint(self):
        assert has_changed(Catalog(), None)

    def test_hex_digest(self):
        digest = fingerprint(Catalog())

        assert len(digest) == 64
        assert int(digest, 16) >= 0

    def test_store_native_values_in_extra_fields(self):
        stamped = dict(intent("greet"), updatedAt=datetime(2024, 5, 1, tzinfo=timezone.utc))
        restamped = dict(intent("greet"), updatedAt=datetime(2024, 6, 1, tzinfo=timezone.utc))

        assert fingerprint(catalog(stamped)) == fingerprint(catalog(dict(stamped)))
        assert fingerprint(catalog(stamped)) != fingerprint(catalog(restamped))
