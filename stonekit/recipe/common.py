"""Shared recipe types and the lenient YAML value conversions they rely on."""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Any, Callable, Generic, Mapping, Optional, TypeVar

T = TypeVar("T")

_TRUE_WORDS = frozenset({"y", "Y", "yes", "Yes", "YES", "true", "True", "TRUE", "on", "On", "ON"})
_FALSE_WORDS = frozenset(
    {"n", "N", "no", "No", "NO", "false", "False", "FALSE", "off", "Off", "OFF"}
)


class RecipeError(ValueError):
    """A recipe or macro document does not have the expected shape."""


@dataclass(frozen=True)
class KeyValue(Generic[T]):
    """One entry of a sequence of single-entry mappings."""

    key: str
    value: T


def stringy_bool(value: Any) -> bool:
    """Accept a boolean or one of the YAML spellings of true and false."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        if value in _TRUE_WORDS:
            return True
        if value in _FALSE_WORDS:
            return False
    raise RecipeError("invalid boolean: expected true or false")


def force_string(value: Any) -> str:
    """Accept a string or a number, returning its text."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        raise RecipeError("expected a string or a number")
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if math.isnan(value):
            return ".nan"
        if math.isinf(value):
            return ".inf" if value > 0 else "-.inf"
        return str(value)
    raise RecipeError("expected a string or a number")


def single_as_sequence(value: Any) -> list[str]:
    """Accept a single string or a list of strings, always returning a list."""
    items = value if isinstance(value, list) else [value]
    if not all(isinstance(item, str) for item in items):
        raise RecipeError("expected a string or a sequence of strings")
    return list(items)


def sequence_of_key_value(value: Any, parse: Callable[[Any], T]) -> list[KeyValue[T]]:
    """Turn a sequence of single-entry mappings into KeyValue items.

    Every value is parsed; only the first entry of each mapping is kept and
    empty mappings are skipped.
    """
    if value is None:
        return []
    if not isinstance(value, list):
        raise RecipeError("expected a sequence of mappings")
    result: list[KeyValue[T]] = []
    for entry in value:
        if not isinstance(entry, Mapping):
            raise RecipeError("expected a sequence of mappings")
        parsed = []
        for key, item in entry.items():
            if not isinstance(key, str):
                raise RecipeError(f"expected a string key, got {key!r}")
            parsed.append(KeyValue(key, parse(item)))
        if parsed:
            result.append(parsed[0])
    return result


def _mapping(value: Any, what: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise RecipeError(f"{what}: expected a mapping")
    return value


def _optional_str(data: Mapping[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    if value is None or isinstance(value, str):
        return value
    raise RecipeError(f"{key}: expected a string")


def _string_list(data: Mapping[str, Any], key: str) -> list[str]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise RecipeError(f"{key}: expected a sequence of strings")
    return list(value)


class PathKind(enum.Enum):
    ANY = "any"
    EXE = "exe"
    SYMLINK = "symlink"
    SPECIAL = "special"


def _path_kind(value: Any) -> PathKind:
    try:
        return PathKind(value)
    except ValueError:
        raise RecipeError(f"invalid path kind: {value!r}") from None


@dataclass(frozen=True)
class PackagePath:
    """A path claimed by a package, optionally restricted to a kind of file."""

    path: PurePosixPath
    kind: PathKind = PathKind.ANY

    @classmethod
    def from_value(cls, value: Any) -> "PackagePath":
        """Parse either `path` or `{path: kind}`."""
        if isinstance(value, str):
            return cls(PurePosixPath(value))
        if isinstance(value, Mapping):
            entries = []
            for path, kind in value.items():
                if not isinstance(path, str):
                    raise RecipeError(f"expected a string path, got {path!r}")
                entries.append(cls(PurePosixPath(path), _path_kind(kind)))
            if not entries:
                raise RecipeError("missing path entry")
            return entries[0]
        raise RecipeError("expected a path or a mapping of path to kind")


@dataclass
class Package:
    """Package level details: summary, description, run deps and paths."""

    summary: Optional[str] = None
    description: Optional[str] = None
    run_deps: list[str] = field(default_factory=list)
    paths: list[PackagePath] = field(default_factory=list)

    @classmethod
    def from_mapping(cls, data: Any) -> "Package":
        data = _mapping(data, "package")
        raw_paths = data.get("paths")
        if raw_paths is None:
            raw_paths = []
        if not isinstance(raw_paths, list):
            raise RecipeError("paths: expected a sequence")
        return cls(
            summary=_optional_str(data, "summary"),
            description=_optional_str(data, "description"),
            run_deps=_string_list(data, "rundeps"),
            paths=[PackagePath.from_value(item) for item in raw_paths],
        )