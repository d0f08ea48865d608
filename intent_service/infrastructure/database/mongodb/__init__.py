from intent_service.infrastructure.database.mongodb.client import MongoDBClient

__all__ = ["MongoDBClient"]
