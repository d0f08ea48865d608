"""
Content fingerprints for intent catalogs.

The fingerprint decides whether a catalog notification needs a retraining
run. Keys are serialized in sorted order, so two equal documents always
match; intent order is significant, so a pure reordering retrains once
more than strictly needed but a real edit is never missed.
"""

from typing import Optional
import hashlib
import json

from intent_service.domain.models.intent import Catalog


def canonical_json(catalog: Catalog) -> str:
    return json.dumps(
        catalog.to_document(),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        # Extra intent fields may hold store-native values such as dates
        default=str,
    )


def fingerprint(catalog: Catalog) -> str:
    """
    Compute the content digest of a catalog.

    Args:
        catalog: Intent catalog

    Returns:
        Hex SHA-256 digest of the canonical serialization
    """
    return hashlib.sha256(canonical_json(catalog).encode("utf-8")).hexdigest()


def has_changed(catalog: Catalog, last_fingerprint: Optional[str]) -> bool:
    """True unless the catalog matches the fingerprint of the last training run."""
    return fingerprint(catalog) != last_fingerprint
