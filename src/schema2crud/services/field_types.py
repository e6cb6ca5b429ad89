"""
Field type mapping.

Turns a declarative field definition from ``backend.schema`` into a
``ResolvedField``: a closed ``FieldKind`` plus the constraint metadata the
model and the storage layer enforce. Resolution never fails; an unknown
type token resolves to ``FieldKind.STRING`` with ``fallback`` set.
"""

import copy
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple

from schema2crud.utils import as_aware, parse_datetime, utc_now

logger = logging.getLogger(__name__)

# Sentinel default that means "current instant at write time"
DATE_NOW = "Date.now"
BOOLEAN_SENTINELS = {"true": True, "false": False}


class FieldKind(str, Enum):
    STRING = "String"
    NUMBER = "Number"
    BOOLEAN = "Boolean"
    DATE = "Date"
    ARRAY = "Array"
    OBJECT = "Object"
    MIXED = "Mixed"
    OBJECT_ID = "ObjectId"

    @classmethod
    def lookup(cls, token: Any) -> Optional['FieldKind']:
        """Case-insensitive match of a type token; None when the token is unknown"""
        if isinstance(token, FieldKind):
            return token
        if not isinstance(token, str):
            return None
        for kind in cls:
            if kind.value.lower() == token.strip().lower():
                return kind
        return None


class _NoDefault:
    def __repr__(self) -> str:
        return "NO_DEFAULT"


NO_DEFAULT: Any = _NoDefault()


@dataclass(frozen=True)
class ResolvedField:
    name: str
    kind: FieldKind
    declared_type: Optional[str] = None
    fallback: bool = False
    required: bool = False
    unique: bool = False
    index: bool = False
    sparse: bool = False
    trim: bool = False
    lowercase: bool = False
    uppercase: bool = False
    minimum: Any = None
    maximum: Any = None
    enum: Optional[Tuple[Any, ...]] = None
    default: Any = NO_DEFAULT
    default_factory: Optional[Callable[[], Any]] = None

    @property
    def has_default(self) -> bool:
        return self.default_factory is not None or self.default is not NO_DEFAULT

    def default_value(self) -> Any:
        """Value for an omitted field; providers are invoked on every call"""
        if self.default_factory is not None:
            return self.default_factory()
        return copy.deepcopy(self.default)

    @property
    def is_text(self) -> bool:
        return self.kind is FieldKind.STRING


def now_provider(kind: FieldKind) -> Callable[[], Any]:
    """Deferred "now" for a ``Date.now`` default.

    Number fields get epoch milliseconds, every other kind gets an aware datetime.
    """
    if kind is FieldKind.NUMBER:
        return lambda: int(utc_now().timestamp() * 1000)
    return utc_now


def _resolve_default(kind: FieldKind, raw: Any) -> Tuple[Any, Optional[Callable[[], Any]]]:
    if raw == DATE_NOW:
        return NO_DEFAULT, now_provider(kind)
    if isinstance(raw, str) and raw in BOOLEAN_SENTINELS:
        return BOOLEAN_SENTINELS[raw], None
    return raw, None


def _resolve_bound(kind: FieldKind, raw: Any) -> Any:
    """Date bounds written as ISO strings are parsed once here"""
    if raw is None:
        return None
    if kind is FieldKind.DATE:
        if isinstance(raw, datetime):
            return raw if raw.tzinfo else raw.replace(tzinfo=timezone.utc)
        if isinstance(raw, (int, float)) and not isinstance(raw, bool):
            return datetime.fromtimestamp(raw / 1000, tz=timezone.utc)
        try:
            return as_aware(parse_datetime(str(raw)))
        except ValueError:
            logger.warning(f"Ignoring unparseable date bound: {raw}")
            return None
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        logger.warning(f"Ignoring non-numeric bound: {raw!r}")
        return None
    return raw


def _resolve_enum(raw: Any) -> Optional[Tuple[Any, ...]]:
    if raw is None:
        return None
    if isinstance(raw, dict):
        raw = raw.get('values', [])
    if isinstance(raw, (list, tuple)):
        return tuple(raw)
    return (raw,)


def normalize_definition(field_def: Any) -> Dict[str, Any]:
    """Accept the shorthand forms: ``"Number"`` and ``[{...}]`` / ``["String"]``"""
    if isinstance(field_def, dict):
        return field_def
    if isinstance(field_def, str):
        return {'type': field_def}
    if isinstance(field_def, list):
        return {'type': FieldKind.ARRAY.value, 'items': field_def[0] if field_def else None}
    return {}


def resolve_field(name: str, field_def: Any) -> ResolvedField:
    """
    Map a field definition to its ResolvedField.

    Args:
        name: Field name as declared in ``backend.schema``
        field_def: The field definition (mapping, type token or array shorthand)

    Returns:
        ResolvedField with default sentinels already resolved
    """
    definition = normalize_definition(field_def)
    token = definition.get('type', FieldKind.STRING.value)

    kind = FieldKind.lookup(token)
    fallback = kind is None
    if kind is None:
        logger.warning(f"Unknown type {token!r} for field '{name}', using String")
        kind = FieldKind.STRING

    default, default_factory = NO_DEFAULT, None
    if 'default' in definition:
        default, default_factory = _resolve_default(kind, definition['default'])

    return ResolvedField(
        name=name,
        kind=kind,
        declared_type=token if isinstance(token, str) else None,
        fallback=fallback,
        required=bool(definition.get('required', False)),
        unique=bool(definition.get('unique', False)),
        index=bool(definition.get('index', False)),
        sparse=bool(definition.get('sparse', False)),
        trim=bool(definition.get('trim', False)),
        lowercase=bool(definition.get('lowercase', False)),
        uppercase=bool(definition.get('uppercase', False)),
        minimum=_resolve_bound(kind, definition.get('min')),
        maximum=_resolve_bound(kind, definition.get('max')),
        enum=_resolve_enum(definition.get('enum')),
        default=default,
        default_factory=default_factory,
    )


def resolve_fields(schema: Dict[str, Any]) -> Dict[str, ResolvedField]:
    """Resolve every field of a ``backend.schema`` mapping, preserving declaration order"""
    return {name: resolve_field(name, definition) for name, definition in (schema or {}).items()}
