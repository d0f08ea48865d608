from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field


class ChatRequest(BaseModel):
    """Schema for a chat message"""
    message: Optional[str] = Field(None, description="Utterance to classify")
    password: Optional[str] = Field(None, description="API password, alternatively sent as Authorization header")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"message": "hello there", "password": "secret"}
        }
    )


class ChatResponse(BaseModel):
    """Schema for a chat answer"""
    response: str = Field(..., description="Response of the predicted intent")
    confidence: float = Field(..., ge=0.0, le=1.0, description="Top-class probability, 2 decimals")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"response": "Hello!", "confidence": 0.93}
        }
    )


class CatalogEditRequest(BaseModel):
    """Schema for a partial catalog pushed by a client"""
    intentsData: Optional[Any] = Field(None, description='Partial catalog: {"intents": [...]}')
    password: Optional[str] = Field(None, description="API password, alternatively sent as Authorization header")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "intentsData": {
                    "intents": [
                        {"tag": "greet", "patterns": ["hi", "hello"], "responses": ["Hello!"]}
                    ]
                },
                "password": "secret"
            }
        }
    )


class CatalogEditResponse(BaseModel):
    """Schema for the catalog edit confirmation"""
    message: str


class CatalogResponse(BaseModel):
    """Schema for the catalog currently served"""
    intents: List[Dict[str, Any]] = Field(default_factory=list)
    fingerprint: Optional[str] = None
