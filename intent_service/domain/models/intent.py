from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Intent(BaseModel):
    """
    One entry of the intent catalog: a tag, the phrases that train it and
    the canned responses returned when it is predicted.
    """
    model_config = ConfigDict(extra="allow", frozen=True)

    tag: str = Field(..., min_length=1, description="Unique intent key")
    patterns: List[str] = Field(default_factory=list, description="Example phrases")
    responses: List[str] = Field(..., min_length=1, description="Candidate responses")


class Catalog(BaseModel):
    """The complete set of intents the classifier is trained on."""
    model_config = ConfigDict(frozen=True)

    intents: List[Intent] = Field(default_factory=list)

    def find_intent(self, tag: str) -> Optional[Intent]:
        """
        Look up an intent by tag.

        Args:
            tag: Intent tag

        Returns:
            The first intent declared with this tag, or None
        """
        for intent in self.intents:
            if intent.tag == tag:
                return intent
        return None

    @property
    def tags(self) -> List[str]:
        return [intent.tag for intent in self.intents]

    def to_document(self) -> Dict[str, Any]:
        """Plain-dict form used for storage and fingerprinting."""
        return {"intents": [intent.model_dump() for intent in self.intents]}


@dataclass(frozen=True)
class Prediction:
    """
    Immutable value object for one classification.

    `nominal_tag` is the arg-max label before the confidence floor was
    applied; `tag` is the label actually served.
    """
    tag: str
    confidence: float
    nominal_tag: str
    fallback: bool = False
