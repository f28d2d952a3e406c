"""Generic config Object: the serialization unit between registry and store.

An Object is one of three kinds:

- ``FIELD``: a scalar string value
- ``OBJECT``: an optional class tag plus named child Objects
- ``SET``: an ordered list of child Objects

Objects placed inside a container are *borrowed*: they belong to that
container, and the registry treats them as unmodified since load. Freshly
built Objects are not borrowed until they are stored somewhere.
"""

from __future__ import annotations

import copy
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Optional, Union

from sdrcatalog.errors import ObjectError

CLASS_KEY = "@class"

Scalar = Union[str, int, float, bool]


class ObjectType(Enum):
    FIELD = "field"
    OBJECT = "object"
    SET = "set"


def _format_scalar(value: Scalar) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return repr(value)
    return str(value)


def _parse_bool(text: str) -> Optional[bool]:
    lowered = text.strip().lower()
    if lowered in ("true", "yes", "1", "on"):
        return True
    if lowered in ("false", "no", "0", "off"):
        return False
    return None


class Object:
    def __init__(
        self,
        kind: ObjectType = ObjectType.OBJECT,
        *,
        value: Optional[str] = None,
        class_name: Optional[str] = None,
    ) -> None:
        self.kind = kind
        self.class_name = class_name if kind is ObjectType.OBJECT else None
        self._value = value if kind is ObjectType.FIELD else None
        self._fields: Dict[str, Object] = {}
        self._items: List[Object] = []
        self.parent: Optional[Object] = None

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    @classmethod
    def make_field(cls, value: Scalar) -> "Object":
        return cls(ObjectType.FIELD, value=_format_scalar(value))

    @classmethod
    def make_object(cls, class_name: Optional[str] = None, **fields: Scalar) -> "Object":
        obj = cls(ObjectType.OBJECT, class_name=class_name)
        for name, value in fields.items():
            obj.set(name, value)
        return obj

    @classmethod
    def make_set(cls, items: Iterable["Object"] = ()) -> "Object":
        obj = cls(ObjectType.SET)
        for item in items:
            obj.append(item)
        return obj

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def is_borrowed(self) -> bool:
        return self.parent is not None

    @property
    def value(self) -> str:
        if self.kind is not ObjectType.FIELD:
            raise ObjectError(f"{self.kind.value} Object has no scalar value")
        return self._value or ""

    def field_names(self) -> List[str]:
        return list(self._fields)

    def get_field(self, name: str) -> Optional["Object"]:
        """Return the child Object called ``name``, or None when absent."""
        if self.kind is not ObjectType.OBJECT:
            return None
        return self._fields.get(name)

    def field_value(self, name: str) -> Optional[str]:
        """Return the scalar value of field ``name``, or None if missing or not a field."""
        child = self.get_field(name)
        if child is None or child.kind is not ObjectType.FIELD:
            return None
        return child.value

    def get(self, name: str, default: Any) -> Any:
        """Return field ``name`` converted to the type of ``default``.

        Missing fields and values that do not parse as that type yield ``default``.
        """
        text = self.field_value(name)
        if text is None:
            return default
        if isinstance(default, bool):
            parsed = _parse_bool(text)
            return default if parsed is None else parsed
        try:
            if isinstance(default, int):
                return int(float(text))
            if isinstance(default, float):
                return float(text)
        except ValueError:
            return default
        return text

    # ------------------------------------------------------------------
    # OBJECT mutation
    # ------------------------------------------------------------------

    def set(self, name: str, value: Union[Scalar, "Object"]) -> None:
        if self.kind is not ObjectType.OBJECT:
            raise ObjectError(f"cannot set field '{name}' on a {self.kind.value} Object")
        child = self._adopt(value) if isinstance(value, Object) else Object.make_field(value)
        child.parent = self
        old = self._fields.get(name)
        if old is not None:
            old.parent = None
        self._fields[name] = child

    # ------------------------------------------------------------------
    # SET access and mutation
    # ------------------------------------------------------------------

    def _require_set(self, op: str) -> None:
        if self.kind is not ObjectType.SET:
            raise ObjectError(f"{op} requires a set Object, got {self.kind.value}")

    def _adopt(self, obj: "Object") -> "Object":
        if obj.parent is not None and obj.parent is not self:
            obj = obj.copy()
        return obj

    def __len__(self) -> int:
        if self.kind is ObjectType.SET:
            return len(self._items)
        if self.kind is ObjectType.OBJECT:
            return len(self._fields)
        return 0

    def __getitem__(self, index: int) -> "Object":
        self._require_set("indexing")
        return self._items[index]

    def __iter__(self) -> Iterator["Object"]:
        self._require_set("iteration")
        return iter(list(self._items))

    def append(self, obj: "Object") -> int:
        """Append ``obj`` and return its slot index."""
        self._require_set("append")
        obj = self._adopt(obj)
        obj.parent = self
        self._items.append(obj)
        return len(self._items) - 1

    def put(self, obj: "Object", index: int) -> None:
        """Overwrite slot ``index``; ``index == len(self)`` appends."""
        self._require_set("put")
        if index < 0 or index > len(self._items):
            raise ObjectError(f"put index {index} out of range (length {len(self._items)})")
        if index == len(self._items):
            self.append(obj)
            return
        obj = self._adopt(obj)
        obj.parent = self
        self._items[index].parent = None
        self._items[index] = obj

    def remove(self, index: int) -> "Object":
        """Remove slot ``index``; later slots shift down by one."""
        self._require_set("remove")
        if index < 0 or index >= len(self._items):
            raise ObjectError(f"remove index {index} out of range (length {len(self._items)})")
        obj = self._items.pop(index)
        obj.parent = None
        return obj

    def clear(self) -> None:
        if self.kind is ObjectType.SET:
            for item in self._items:
                item.parent = None
            self._items.clear()
        elif self.kind is ObjectType.OBJECT:
            for child in self._fields.values():
                child.parent = None
            self._fields.clear()
        else:
            raise ObjectError("cannot clear a field Object")

    # ------------------------------------------------------------------
    # Copy, comparison, JSON form
    # ------------------------------------------------------------------

    def copy(self) -> "Object":
        """Deep copy, detached from any container."""
        parent, self.parent = self.parent, None
        try:
            dup = copy.deepcopy(self)
        finally:
            self.parent = parent
        return dup

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Object):
            return NotImplemented
        return (
            self.kind is other.kind
            and self.class_name == other.class_name
            and self._value == other._value
            and self._fields == other._fields
            and self._items == other._items
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        if self.kind is ObjectType.FIELD:
            return f"Object.field({self._value!r})"
        if self.kind is ObjectType.SET:
            return f"Object.set(len={len(self._items)})"
        return f"Object({self.class_name!r}, fields={sorted(self._fields)})"

    def to_json(self) -> Any:
        if self.kind is ObjectType.FIELD:
            return self.value
        if self.kind is ObjectType.SET:
            return [item.to_json() for item in self._items]
        data: Dict[str, Any] = {}
        if self.class_name:
            data[CLASS_KEY] = self.class_name
        for name, child in self._fields.items():
            data[name] = child.to_json()
        return data

    @classmethod
    def from_json(cls, data: Any) -> "Object":
        if isinstance(data, (str, int, float, bool)):
            return cls.make_field(data)
        if isinstance(data, list):
            return cls.make_set(cls.from_json(item) for item in data)
        if isinstance(data, dict):
            class_name = data.get(CLASS_KEY)
            if class_name is not None and not isinstance(class_name, str):
                raise ObjectError(f"{CLASS_KEY} must be a string")
            obj = cls(ObjectType.OBJECT, class_name=class_name)
            for name, value in data.items():
                if name == CLASS_KEY:
                    continue
                obj.set(str(name), cls.from_json(value))
            return obj
        raise ObjectError(f"cannot build an Object from {type(data).__name__}")
