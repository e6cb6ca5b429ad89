"""
Structural validation of schema documents.

All problems are collected in one pass so a caller editing a large schema
gets the complete list rather than one error at a time.
"""

from typing import Any, Dict, List

from pydantic import BaseModel, Field

from schema2crud.services.field_types import FieldKind, normalize_definition


class SchemaValidation(BaseModel):
    valid: bool
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


def validate_schema(doc: Any) -> SchemaValidation:
    """
    Check a candidate schema document. Never raises.

    Args:
        doc: The candidate document, usually parsed JSON

    Returns:
        SchemaValidation with every error and warning found
    """
    errors: List[str] = []
    warnings: List[str] = []

    if not isinstance(doc, dict):
        errors.append("Schema must be an object")
        return SchemaValidation(valid=False, errors=errors, warnings=warnings)

    record = doc.get('record')
    if not isinstance(record, dict):
        errors.append('Schema must contain a "record" object')
        return SchemaValidation(valid=False, errors=errors, warnings=warnings)

    if len(record) == 0:
        warnings.append("Schema has no entities defined")

    seen_routes: Dict[str, str] = {}
    for entity_name, config in record.items():
        if not isinstance(entity_name, str) or not entity_name.strip():
            errors.append("Entity names must be non-empty strings")
            continue
        if not isinstance(config, dict):
            errors.append(f"Configuration for entity {entity_name} must be an object")
            continue

        _check_route(entity_name, config.get('route'), seen_routes, errors, warnings)
        _check_backend(entity_name, config.get('backend'), errors, warnings)

        if not isinstance(config.get('frontend'), dict):
            warnings.append(f'Missing "frontend" configuration for entity: {entity_name}')

    return SchemaValidation(valid=len(errors) == 0, errors=errors, warnings=warnings)


def _check_route(entity_name: str, route: Any, seen_routes: Dict[str, str],
                 errors: List[str], warnings: List[str]) -> None:
    if not route:
        errors.append(f'Missing "route" for entity: {entity_name}')
        return
    if not isinstance(route, str) or not route.startswith('/'):
        errors.append(f'Route must start with "/" for entity: {entity_name}')
        return

    normalized = route.rstrip('/') or '/'
    if normalized == '/':
        warnings.append(f'Route "/" of entity {entity_name} is reserved for the service root; entity will not be bound')
        return
    if normalized in seen_routes:
        warnings.append(f'Route "{route}" of entity {entity_name} is already used by entity: {seen_routes[normalized]}')
    else:
        seen_routes[normalized] = entity_name


def _check_backend(entity_name: str, backend: Any, errors: List[str], warnings: List[str]) -> None:
    if not isinstance(backend, dict):
        errors.append(f'Missing "backend" configuration for entity: {entity_name}')
        return

    schema = backend.get('schema')
    if not isinstance(schema, dict):
        errors.append(f'Missing "backend.schema" for entity: {entity_name}')
        return
    if len(schema) == 0:
        errors.append(f'Empty "backend.schema" for entity: {entity_name}')

    for field_name, field_def in schema.items():
        token = normalize_definition(field_def).get('type', FieldKind.STRING.value)
        if FieldKind.lookup(token) is None:
            warnings.append(f'Unknown type "{token}" for field {entity_name}.{field_name}, using String')

    options = backend.get('options')
    if options is not None and not isinstance(options, dict):
        warnings.append(f'Ignoring non-object "backend.options" for entity: {entity_name}')
