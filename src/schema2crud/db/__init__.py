"""
Storage layer.

Architecture:
- StorageProvider: CRUD contract shared by every backend
- MongoStorage: MongoDB via Motor
- MemoryStorage: in-process fallback store
- DatabaseFactory: selects the provider and falls back when MongoDB is unreachable
"""

from .base import StorageProvider
from .factory import DatabaseFactory
from .memory import MemoryStorage
from .mongodb import MongoStorage

__all__ = ['StorageProvider', 'DatabaseFactory', 'MemoryStorage', 'MongoStorage']
