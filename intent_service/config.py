from functools import lru_cache
from typing import List, Optional
import os

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # Service information
    SERVICE_NAME: str = "intent-service"
    VERSION: str = "0.1.0"
    ENVIRONMENT: str = "development"

    # FastAPI configuration
    API_PREFIX: str = "/api"
    DEBUG: bool = False

    # Authentication
    API_PASSWORD: str

    # Catalog store configuration
    CATALOG_BACKEND: str = "mongodb"
    MONGODB_URI: str = "mongodb://localhost:27017/?replicaSet=rs0"
    MONGODB_DATABASE: str = "chatbot"
    MONGODB_CATALOG_COLLECTION: str = "catalogs"
    MONGODB_TIMEOUT_MS: int = 5000
    CATALOG_DOCUMENT_ID: str = "intents"

    # Model configuration
    MODEL_DIR: str = "./model"
    CONFIDENCE_THRESHOLD: float = 0.7
    DEFAULT_INTENT_TAG: str = "default"

    # Training configuration
    TRAINING_EPOCHS: int = 200
    TRAINING_BATCH_SIZE: int = 5
    HIDDEN_LAYER_SIZES: List[int] = [128, 64]
    # L2 weight penalty, the network has no dropout
    TRAINING_ALPHA: float = 1e-4
    TRAINING_LEARNING_RATE: float = 1e-3
    TRAINING_RANDOM_SEED: Optional[int] = None

    # Logging configuration
    LOG_LEVEL: str = "INFO"

    @field_validator("CATALOG_BACKEND")
    @classmethod
    def validate_catalog_backend(cls, v: str) -> str:
        """Only MongoDB and the in-process store are supported."""
        if v not in ("mongodb", "memory"):
            raise ValueError("CATALOG_BACKEND must be 'mongodb' or 'memory'")
        return v

    @field_validator("CONFIDENCE_THRESHOLD")
    @classmethod
    def validate_threshold(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError("CONFIDENCE_THRESHOLD must be between 0 and 1")
        return v

    @field_validator("TRAINING_EPOCHS", "TRAINING_BATCH_SIZE")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Training epochs and batch size must be positive")
        return v

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )


def load_env_file() -> None:
    """Load environment variables from .env file if it exists."""
    env_path = os.path.join(os.getcwd(), ".env")
    if os.path.exists(env_path):
        load_dotenv(dotenv_path=env_path)


@lru_cache
def get_settings() -> Settings:
    """
    Create and cache application settings.

    Returns:
        Settings: Application settings instance
    """
    load_env_file()
    return Settings()
