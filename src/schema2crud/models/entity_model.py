"""
Runtime model for one entity.

An EntityModel wraps a Pydantic model generated from the resolved field
table. It is built once per schema version and never patched: a schema
change produces a new EntityModel.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Annotated, Any, Callable, Dict, List, Optional, Tuple, Type

from bson import ObjectId
from pydantic import (AfterValidator, BaseModel, BeforeValidator, ConfigDict, Field,
                      ValidationError as PydanticValidationError, create_model)
from pydantic_core import PydanticCustomError

from schema2crud.exceptions import RecordValidationError
from schema2crud.services.field_types import FieldKind, ResolvedField
from schema2crud.utils import as_aware, coerce_numeric, parse_datetime, utc_now

logger = logging.getLogger(__name__)

SURROGATE_KEY = '_id'
SYSTEM_FIELDS = ('_id', '__v')
CREATED_AT = 'createdAt'
UPDATED_AT = 'updatedAt'

BOOLEAN_STRINGS = {
    'true': True, '1': True, 'yes': True, 'on': True,
    'false': False, '0': False, 'no': False, 'off': False,
}


@dataclass(frozen=True)
class ModelOptions:
    timestamps: bool = True
    strict: bool = False
    identity_fields: Tuple[str, ...] = ('id',)

    @classmethod
    def from_config(cls, options: Any) -> 'ModelOptions':
        """Read ``backend.options``; anything that is not a mapping means defaults"""
        if not isinstance(options, dict):
            options = {}
        identity = options.get('identityFields', ['id'])
        if isinstance(identity, str):
            identity = [identity]
        if not isinstance(identity, (list, tuple)):
            identity = ['id']
        return cls(
            timestamps=bool(options.get('timestamps', True)),
            strict=bool(options.get('strict', False)),
            identity_fields=tuple(str(f) for f in identity if f),
        )


# ==================== Casting ====================

def _cast_failed(kind: FieldKind, name: str, value: Any) -> PydanticCustomError:
    return PydanticCustomError(
        'cast_error',
        'Cast to {kind} failed for value "{value}" at path "{path}"',
        {'kind': kind.value, 'value': str(value), 'path': name},
    )


def _cast_string(value: Any) -> Any:
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, ObjectId):
        return str(value)
    return value


def _cast_number(value: Any) -> Any:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str) and value.strip():
        number = coerce_numeric(value)
        if isinstance(number, (int, float)):
            return number
    raise ValueError(value)


def _cast_boolean(value: Any) -> Any:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    if isinstance(value, str) and value.strip().lower() in BOOLEAN_STRINGS:
        return BOOLEAN_STRINGS[value.strip().lower()]
    raise ValueError(value)


def _cast_date(value: Any) -> Any:
    if isinstance(value, datetime):
        return as_aware(value)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    if isinstance(value, str) and value.strip():
        return as_aware(parse_datetime(value))
    raise ValueError(value)


def _cast_array(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _cast_object(value: Any) -> Any:
    if isinstance(value, dict):
        return value
    raise ValueError(value)


def _cast_object_id(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, str) and ObjectId.is_valid(value):
        return value
    raise ValueError(value)


def _identity(value: Any) -> Any:
    return value


CASTERS: Dict[FieldKind, Callable[[Any], Any]] = {
    FieldKind.STRING: _cast_string,
    FieldKind.NUMBER: _cast_number,
    FieldKind.BOOLEAN: _cast_boolean,
    FieldKind.DATE: _cast_date,
    FieldKind.ARRAY: _cast_array,
    FieldKind.OBJECT: _cast_object,
    FieldKind.MIXED: _identity,
    FieldKind.OBJECT_ID: _cast_object_id,
}


def _caster(field: ResolvedField) -> Callable[[Any], Any]:
    cast = CASTERS[field.kind]

    def before(value: Any) -> Any:
        if value is None:
            return None
        # a cleared form input arrives as "" and is stored as null
        if value == '' and field.kind is not FieldKind.STRING:
            return None
        try:
            return cast(value)
        except (ValueError, TypeError, OverflowError):
            raise _cast_failed(field.kind, field.name, value)
    return before


def _constraints(field: ResolvedField) -> Callable[[Any], Any]:
    """Setters (trim/case) followed by enum and bound checks for one field"""

    def after(value: Any) -> Any:
        if value is None:
            return None
        if isinstance(value, str):
            if field.trim:
                value = value.strip()
            if field.lowercase:
                value = value.lower()
            if field.uppercase:
                value = value.upper()

        if field.enum is not None and field.kind not in (FieldKind.ARRAY, FieldKind.OBJECT):
            if value not in field.enum:
                raise PydanticCustomError(
                    'enum', '`{value}` is not a valid enum value for path `{path}`',
                    {'value': str(value), 'path': field.name})

        if field.kind in (FieldKind.NUMBER, FieldKind.DATE):
            if field.minimum is not None and value < field.minimum:
                raise PydanticCustomError(
                    'min', 'Path `{path}` ({value}) is less than minimum allowed value ({limit})',
                    {'path': field.name, 'value': str(value), 'limit': str(field.minimum)})
            if field.maximum is not None and value > field.maximum:
                raise PydanticCustomError(
                    'max', 'Path `{path}` ({value}) is more than maximum allowed value ({limit})',
                    {'path': field.name, 'value': str(value), 'limit': str(field.maximum)})
        return value
    return after


def build_record_class(entity: str, fields: Dict[str, ResolvedField], strict: bool) -> Type[BaseModel]:
    """
    Generate the Pydantic model used to validate writes for an entity.

    Declared field names become aliases of positional attribute names so a
    field called ``json`` or ``model_config`` cannot shadow BaseModel members.
    """
    definitions: Dict[str, Any] = {}
    for position, (name, field) in enumerate(fields.items()):
        annotation = Annotated[Optional[Any], BeforeValidator(_caster(field)), AfterValidator(_constraints(field))]
        definitions[f"field_{position}"] = (annotation, Field(default=None, alias=name))

    class_name = re.sub(r'\W', '_', entity.title()) + 'Record'
    return create_model(  # type: ignore[call-overload]
        class_name,
        __config__=ConfigDict(extra='forbid' if strict else 'allow', populate_by_name=False),
        **definitions,
    )


# ==================== EntityModel ====================

class EntityModel:
    """Resolved field table, write-time validators and collection identity for one entity"""

    def __init__(self, entity: str, fields: Dict[str, ResolvedField], options: ModelOptions, collection: str):
        self.entity = entity
        self.fields = dict(fields)
        self.options = options
        self.collection = collection
        self.record_class = build_record_class(entity, self.fields, options.strict)

    def __repr__(self) -> str:
        return f"EntityModel({self.entity!r}, fields={list(self.fields)}, collection={self.collection!r})"

    @property
    def string_fields(self) -> List[str]:
        """Fields searched by the list endpoint"""
        return [name for name, field in self.fields.items() if field.is_text]

    @property
    def unique_fields(self) -> List[str]:
        return [name for name, field in self.fields.items() if field.unique]

    @property
    def indexed_fields(self) -> List[ResolvedField]:
        return [field for field in self.fields.values() if field.unique or field.index]

    @property
    def system_fields(self) -> Tuple[str, ...]:
        managed = SYSTEM_FIELDS
        if self.options.timestamps:
            managed += tuple(f for f in (CREATED_AT, UPDATED_AT) if f not in self.fields)
        return managed

    @property
    def auto_number_field(self) -> Optional[str]:
        """Declared ``id`` of type Number gets the next sequence value when omitted"""
        field = self.fields.get('id')
        if field is not None and field.kind is FieldKind.NUMBER:
            return 'id'
        return None

    def identity_value(self, field_name: str, token: str) -> Any:
        """Convert an id token from the URL for lookup on a declared identity field"""
        field = self.fields.get(field_name)
        if field is None or field.kind is FieldKind.NUMBER:
            return coerce_numeric(token)
        return token

    # ---------- writes ----------

    def validate_create(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Validate a create payload and apply defaults and timestamps.

        Raises:
            RecordValidationError: listing every violated constraint
        """
        data = self._strip_system(payload)
        for name, field in self.fields.items():
            if name not in data and field.has_default:
                data[name] = field.default_value()

        document = self._validate(data)
        if self.options.timestamps:
            now = utc_now()
            document[CREATED_AT] = now
            document[UPDATED_AT] = now
        return document

    def validate_update(self, existing: Dict[str, Any], changes: Dict[str, Any]) -> Dict[str, Any]:
        """Merge a partial payload over an existing record and re-validate the result"""
        merged = self._strip_system(existing)
        merged.update(self._strip_system(changes))

        document = self._validate(merged)
        for name in self.system_fields:
            if name in existing:
                document[name] = existing[name]
        if self.options.timestamps:
            document[UPDATED_AT] = utc_now()
        return document

    def _strip_system(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return {k: v for k, v in (payload or {}).items() if k not in self.system_fields}

    def _validate(self, data: Dict[str, Any]) -> Dict[str, Any]:
        details: List[str] = []
        failed: set = set()
        document: Dict[str, Any] = {}

        try:
            instance = self.record_class.model_validate(data)
            # omitted optional fields stay absent instead of becoming null
            document = {k: v for k, v in instance.model_dump(by_alias=True).items() if k in data}
        except PydanticValidationError as e:
            for error in e.errors():
                field_name = str(error['loc'][0]) if error.get('loc') else 'unknown'
                failed.add(field_name)
                details.append(self._describe(field_name, error))
            document = dict(data)

        for name, field in self.fields.items():
            if field.required and name not in failed and self._is_blank(document.get(name)):
                details.append(f"Path `{name}` is required.")

        if details:
            raise RecordValidationError(details, entity=self.entity)
        return document

    @staticmethod
    def _is_blank(value: Any) -> bool:
        return value is None or (isinstance(value, str) and value == '')

    @staticmethod
    def _describe(field_name: str, error: Dict[str, Any]) -> str:
        if error.get('type') == 'extra_forbidden':
            return f"Field `{field_name}` is not defined in the schema."
        return f"{error.get('msg', 'Invalid value')}."
