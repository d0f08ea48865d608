from dataclasses import dataclass
from typing import Any, Optional, Tuple


@dataclass(frozen=True)
class TrainedModel:
    """
    A fitted classifier bound to the vocabulary and label set it was
    trained with.

    The three parts are only ever created, saved and loaded together:
    input columns follow `vocabulary` order and output positions follow
    `labels` order.
    """
    network: Any
    vocabulary: Tuple[str, ...]
    labels: Tuple[str, ...]
    fingerprint: Optional[str] = None

    @property
    def input_size(self) -> int:
        return len(self.vocabulary)

    @property
    def output_size(self) -> int:
        return len(self.labels)

    def __repr__(self) -> str:
        return (
            f"TrainedModel(network={type(self.network).__name__}, "
            f"vocabulary={self.input_size}, labels={self.output_size}, "
            f"fingerprint={self.fingerprint!r})"
        )
