from .base import SessionStore
from .dynamodb import DynamoDBStore
from .memory import MemoryStore

__all__ = ["SessionStore", "MemoryStore", "DynamoDBStore"]
