"""
Parser for the vision service's delimited text responses.

A response looks like ``key1:value1,key2:value2`` where a value may be an
array literal ``[e1,e2,...]``. Keys are case-insensitive. Any response that
contains the word "error" is treated as a failure reported by the service.
"""
from __future__ import annotations
import math
import re
import struct
from decimal import Decimal, InvalidOperation
from typing import Callable, Dict, Iterator, List, Optional, Tuple, TypeVar

from .errors import KeyNotFoundError, RemoteError, ValueFormatError

T = TypeVar("T")

INT32_RANGE = (-2**31, 2**31 - 1)
INT64_RANGE = (-2**63, 2**63 - 1)
DECIMAL_MAX = Decimal(2**96 - 1)

TRUE_VALUES = frozenset({"true", "1", "yes", "on", "enabled"})
FALSE_VALUES = frozenset({"false", "0", "no", "off", "disabled"})

_INTEGER_RE = re.compile(r"^\s*[+-]?[0-9]+\s*$")
_DECIMAL_RE = re.compile(r"^\s*[+-]?([0-9]+\.?[0-9]*|\.[0-9]+)([eE][+-]?[0-9]+)?\s*$")
_FLOAT_SPECIAL_RE = re.compile(r"^\s*[+-]?(nan|infinity)\s*$", re.IGNORECASE)


# ---------- value converters ----------
def _to_integer(text: str, bounds: Tuple[int, int]) -> int:
    if not _INTEGER_RE.match(text):
        raise ValueError(text)
    value = int(text)
    if not bounds[0] <= value <= bounds[1]:
        raise ValueError(text)
    return value


def to_int(text: str) -> int:
    return _to_integer(text, INT32_RANGE)


def to_long(text: str) -> int:
    return _to_integer(text, INT64_RANGE)


def to_double(text: str) -> float:
    if not (_DECIMAL_RE.match(text) or _FLOAT_SPECIAL_RE.match(text)):
        raise ValueError(text)
    return float(text.strip())


def to_float(text: str) -> float:
    """Parse like :func:`to_double`, then round to single precision."""
    value = to_double(text)
    if math.isnan(value) or math.isinf(value):
        return value
    try:
        return struct.unpack("f", struct.pack("f", value))[0]
    except OverflowError:
        return math.copysign(math.inf, value)


def to_decimal(text: str) -> Decimal:
    if not _DECIMAL_RE.match(text):
        raise ValueError(text)
    try:
        value = Decimal(text.strip())
    except InvalidOperation as e:
        raise ValueError(text) from e
    if value.copy_abs() > DECIMAL_MAX:
        raise ValueError(f"{text} is out of decimal range")
    return value


def to_bool(text: str) -> bool:
    lowered = text.lower()
    if lowered in TRUE_VALUES:
        return True
    if lowered in FALSE_VALUES:
        return False
    raise ValueError(text)


def split_respecting_brackets(text: str, separator: str) -> List[str]:
    """
    Split ``text`` on ``separator`` except inside ``[...]``.

    Only the bracket depth is tracked, so unbalanced brackets are tolerated
    (depth can go negative and then no separator splits). A trailing empty
    segment is not returned.
    """
    parts: List[str] = []
    current: List[str] = []
    depth = 0
    i = 0
    step = len(separator)
    while i < len(text):
        ch = text[i]
        if ch == "[":
            depth += 1
            current.append(ch)
        elif ch == "]":
            depth -= 1
            current.append(ch)
        elif depth == 0 and step and text.startswith(separator, i):
            parts.append("".join(current))
            current = []
            i += step
            continue
        else:
            current.append(ch)
        i += 1
    if current:
        parts.append("".join(current))
    return parts


class _KeyMap(dict):
    """dict keyed by lower-cased key that remembers the first-seen spelling."""

    def __init__(self):
        super().__init__()
        self.names: Dict[str, str] = {}

    def put(self, key: str, value) -> None:
        folded = key.lower()
        self.names.setdefault(folded, key)
        self[folded] = value

    def drop(self, key: str) -> None:
        folded = key.lower()
        self.pop(folded, None)
        self.names.pop(folded, None)

    def find(self, key: str):
        return self.get(key.lower())

    def has(self, key: str) -> bool:
        return key.lower() in self

    def display_keys(self) -> List[str]:
        return [self.names[k] for k in self]

    def display_items(self):
        return [(self.names[k], v) for k, v in self.items()]


class ParseResult:
    """
    Typed, read-only view over one vision service response.

    Scalars and arrays live in separate case-insensitive mappings; a key is in
    exactly one of them (the last assignment wins). ``str(result)`` is the
    original response text.
    """

    def __init__(self, response: Optional[str], pair_separator: str = ",", key_value_separator: str = ":"):
        self._data = _KeyMap()
        self._arrays = _KeyMap()
        self._response = response if response is not None else ""
        self._parse(self._response, pair_separator, key_value_separator)

    def _parse(self, response: str, pair_separator: str, key_value_separator: str) -> None:
        if not response.strip():
            return
        if "error" in response.lower():
            raise RemoteError(response)

        clean = response.replace("\r", "").replace("\n", "").strip()
        for pair in split_respecting_brackets(clean, pair_separator):
            if not pair.strip():
                continue
            parts = pair.split(key_value_separator, 1) if key_value_separator else [pair]
            if len(parts) != 2:
                continue
            key, value = parts[0].strip(), parts[1].strip()
            if not key:
                continue
            if value.startswith("[") and value.endswith("]"):
                content = value[1:-1]
                elements = () if not content.strip() else tuple(e.strip() for e in content.split(","))
                self._data.drop(key)
                self._arrays.put(key, elements)
            else:
                self._arrays.drop(key)
                self._data.put(key, value)

    # ---------- lookups ----------
    def _scalar(self, key: str) -> str:
        value = self._data.find(key)
        if value is None:
            raise KeyNotFoundError(key, self._response)
        return value

    def _array(self, key: str) -> Tuple[str, ...]:
        elements = self._arrays.find(key)
        if elements is None:
            raise KeyNotFoundError(key, self._response, array=True)
        return elements

    def _convert(self, key: str, convert: Callable[[str], T], type_name: str) -> T:
        value = self._scalar(key)
        try:
            return convert(value)
        except ValueError as e:
            raise ValueFormatError(key, value, type_name) from e

    def _convert_array(self, key: str, convert: Callable[[str], T], type_name: str) -> List[T]:
        result: List[T] = []
        for index, element in enumerate(self._array(key)):
            try:
                result.append(convert(element))
            except ValueError as e:
                raise ValueFormatError(key, element, type_name, index=index) from e
        return result

    def _try(self, key: str, convert: Callable[[str], T]) -> Optional[T]:
        value = self._data.find(key)
        if value is None:
            return None
        try:
            return convert(value)
        except ValueError:
            return None

    def _try_array(self, key: str, convert: Callable[[str], T]) -> Optional[List[T]]:
        elements = self._arrays.find(key)
        if elements is None:
            return None
        try:
            return [convert(e) for e in elements]
        except ValueError:
            return None

    # ---------- strict scalar accessors ----------
    def get_int(self, key: str) -> int:
        return self._convert(key, to_int, "int")

    def get_long(self, key: str) -> int:
        return self._convert(key, to_long, "long")

    def get_float(self, key: str) -> float:
        return self._convert(key, to_float, "float")

    def get_double(self, key: str) -> float:
        return self._convert(key, to_double, "double")

    def get_decimal(self, key: str) -> Decimal:
        return self._convert(key, to_decimal, "decimal")

    def get_string(self, key: str) -> str:
        return self._scalar(key)

    def get_bool(self, key: str) -> bool:
        """Accepts true/1/yes/on/enabled and false/0/no/off/disabled, any case."""
        return self._convert(key, to_bool, "bool (true/false, 1/0, yes/no, on/off, enabled/disabled)")

    # ---------- strict array accessors ----------
    def get_int_array(self, key: str) -> List[int]:
        return self._convert_array(key, to_int, "int")

    def get_long_array(self, key: str) -> List[int]:
        return self._convert_array(key, to_long, "long")

    def get_float_array(self, key: str) -> List[float]:
        return self._convert_array(key, to_float, "float")

    def get_double_array(self, key: str) -> List[float]:
        return self._convert_array(key, to_double, "double")

    def get_decimal_array(self, key: str) -> List[Decimal]:
        return self._convert_array(key, to_decimal, "decimal")

    def get_string_array(self, key: str) -> List[str]:
        return list(self._array(key))

    # ---------- tolerant accessors ----------
    def try_get_int(self, key: str) -> Optional[int]:
        return self._try(key, to_int)

    def try_get_long(self, key: str) -> Optional[int]:
        return self._try(key, to_long)

    def try_get_float(self, key: str) -> Optional[float]:
        return self._try(key, to_float)

    def try_get_double(self, key: str) -> Optional[float]:
        return self._try(key, to_double)

    def try_get_decimal(self, key: str) -> Optional[Decimal]:
        return self._try(key, to_decimal)

    def try_get_bool(self, key: str) -> Optional[bool]:
        return self._try(key, to_bool)

    def try_get_string(self, key: str) -> Optional[str]:
        return self._data.find(key)

    def try_get_int_array(self, key: str) -> Optional[List[int]]:
        return self._try_array(key, to_int)

    def try_get_long_array(self, key: str) -> Optional[List[int]]:
        return self._try_array(key, to_long)

    def try_get_float_array(self, key: str) -> Optional[List[float]]:
        return self._try_array(key, to_float)

    def try_get_double_array(self, key: str) -> Optional[List[float]]:
        return self._try_array(key, to_double)

    def try_get_decimal_array(self, key: str) -> Optional[List[Decimal]]:
        return self._try_array(key, to_decimal)

    def try_get_string_array(self, key: str) -> Optional[List[str]]:
        elements = self._arrays.find(key)
        return None if elements is None else list(elements)

    # ---------- introspection ----------
    def has_key(self, key: str) -> bool:
        return self._data.has(key) or self._arrays.has(key)

    def has_array_key(self, key: str) -> bool:
        return self._arrays.has(key)

    @property
    def keys(self) -> List[str]:
        return self._data.display_keys()

    @property
    def array_keys(self) -> List[str]:
        return self._arrays.display_keys()

    @property
    def all_keys(self) -> List[str]:
        return self.keys + self.array_keys

    @property
    def count(self) -> int:
        return len(self._data)

    @property
    def array_count(self) -> int:
        return len(self._arrays)

    @property
    def total_count(self) -> int:
        return self.count + self.array_count

    @property
    def response(self) -> str:
        return self._response

    def items(self) -> Iterator[Tuple[str, str]]:
        return iter(self._data.display_items())

    def array_items(self) -> Iterator[Tuple[str, List[str]]]:
        return ((k, list(v)) for k, v in self._arrays.display_items())

    def to_dict(self) -> Dict[str, str]:
        return dict(self._data.display_items())

    def to_array_dict(self) -> Dict[str, List[str]]:
        return {k: list(v) for k, v in self._arrays.display_items()}

    def __str__(self) -> str:
        return self._response

    def __repr__(self) -> str:
        return f"ParseResult(keys={self.keys!r}, array_keys={self.array_keys!r})"
