"""
MongoDB database driver implementation.
"""

from .core import MongoCore
from .documents import MongoStorage

__all__ = ['MongoCore', 'MongoStorage']
