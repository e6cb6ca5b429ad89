"""
ModelRegistry: builds and caches one EntityModel per entity.

The cache is a plain dict that is only ever replaced, never edited in
place, so readers holding an older snapshot keep a consistent view while a
schema update installs the new one.
"""

import logging
import re
from typing import Any, Dict, Mapping, Optional

from schema2crud.models.entity_model import EntityModel, ModelOptions
from schema2crud.services.field_types import resolve_fields

logger = logging.getLogger(__name__)


def collection_name(entity: str) -> str:
    """Canonical storage collection for an entity name"""
    return re.sub(r'[^0-9a-zA-Z_]+', '_', entity.strip()).lower()


def build_model(entity: str, entity_config: Mapping[str, Any]) -> EntityModel:
    """
    Build the EntityModel for an entity config.

    Args:
        entity: Entity name (key of ``record``)
        entity_config: The EntityConfig; only ``backend`` is read

    Returns:
        A new EntityModel. An empty ``backend.schema`` yields a model with no declared fields.
    """
    backend = entity_config.get('backend') or {}
    fields = resolve_fields(backend.get('schema') or {})
    options = ModelOptions.from_config(backend.get('options'))
    model = EntityModel(entity, fields, options, collection_name(entity))
    logger.info(f"Model created: {entity} ({len(fields)} fields, collection '{model.collection}')")
    return model


class ModelRegistry:
    """Memoized EntityModel per entity name."""

    def __init__(self) -> None:
        self._models: Dict[str, EntityModel] = {}

    def get_or_build(self, entity: str, entity_config: Mapping[str, Any]) -> EntityModel:
        model = self._models.get(entity)
        if model is None:
            model = build_model(entity, entity_config)
            self._models = {**self._models, entity: model}
        return model

    def get(self, entity: str) -> Optional[EntityModel]:
        return self._models.get(entity)

    def invalidate(self, entity: Optional[str] = None) -> None:
        """Drop one cached model, or all of them when no entity is given"""
        if entity is None:
            self._models = {}
            logger.debug("Model cache cleared")
        elif entity in self._models:
            self._models = {k: v for k, v in self._models.items() if k != entity}
            logger.debug(f"Model cache entry dropped: {entity}")

    def snapshot(self) -> Dict[str, EntityModel]:
        return dict(self._models)

    def replace(self, models: Mapping[str, EntityModel]) -> None:
        self._models = dict(models)

    def __contains__(self, entity: str) -> bool:
        return entity in self._models

    def __len__(self) -> int:
        return len(self._models)
