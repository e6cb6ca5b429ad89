"""
schema2crud application package.

This package turns a schema document into a running CRUD service.
It includes the schema validator, dynamic models, storage drivers and the
routers that are bound and rebound at runtime from the schema.
"""

__version__ = "1.0.0"
