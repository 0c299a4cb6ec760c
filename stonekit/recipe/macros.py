"""Macro documents: actions, definitions, tuning flags and groups, packages."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

import yaml

from stonekit.recipe.common import (
    KeyValue,
    Package,
    RecipeError,
    _mapping,
    _string_list,
    sequence_of_key_value,
)
from stonekit.recipe.tuning import TuningFlag, TuningGroup


def _definition(value: Any) -> str:
    if not isinstance(value, str):
        raise RecipeError(f"definition: expected a string, got {value!r}")
    return value


@dataclass
class Action:
    """A command macro and the build dependencies it pulls in."""

    command: str
    dependencies: list[str] = field(default_factory=list)

    @classmethod
    def from_mapping(cls, data: Any) -> "Action":
        data = _mapping(data, "action")
        command = data.get("command")
        if command is None:
            raise RecipeError("action: missing field `command`")
        if not isinstance(command, str):
            raise RecipeError("action: command must be a string")
        return cls(command=command, dependencies=_string_list(data, "dependencies"))


@dataclass
class Macros:
    """A parsed macros document."""

    actions: list[KeyValue[Action]] = field(default_factory=list)
    definitions: list[KeyValue[str]] = field(default_factory=list)
    flags: list[KeyValue[TuningFlag]] = field(default_factory=list)
    tuning: list[KeyValue[TuningGroup]] = field(default_factory=list)
    packages: list[KeyValue[Package]] = field(default_factory=list)
    default_tuning_groups: list[str] = field(default_factory=list)

    @classmethod
    def from_mapping(cls, data: Any) -> "Macros":
        data = _mapping(data, "macros")
        return cls(
            actions=sequence_of_key_value(data.get("actions"), Action.from_mapping),
            definitions=sequence_of_key_value(data.get("definitions"), _definition),
            flags=sequence_of_key_value(data.get("flags"), TuningFlag.from_mapping),
            tuning=sequence_of_key_value(data.get("tuning"), TuningGroup.from_mapping),
            packages=sequence_of_key_value(data.get("packages"), Package.from_mapping),
            default_tuning_groups=_string_list(data, "defaultTuningGroups"),
        )


def from_bytes(data: Union[bytes, str]) -> Macros:
    """Parse a YAML macros document."""
    try:
        document = yaml.safe_load(data)
    except yaml.YAMLError as error:
        raise RecipeError(f"invalid YAML: {error}") from error
    return Macros.from_mapping(document)