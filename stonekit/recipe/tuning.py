"""Tuning flags and groups, and resolving enabled groups into flags."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, ClassVar, Mapping, Optional

from stonekit.recipe.common import (
    KeyValue,
    RecipeError,
    _mapping,
    _optional_str,
    sequence_of_key_value,
    single_as_sequence,
)


class TuningError(Exception):
    """Base error for tuning resolution."""


class UnknownFlagError(TuningError):
    def __init__(self, flag: str) -> None:
        self.flag = flag
        super().__init__(f"unknown flag {flag}")


class UnknownGroupError(TuningError):
    def __init__(self, group: str) -> None:
        self.group = group
        super().__init__(f"unknown group {group}")


class UnknownGroupValueError(TuningError):
    def __init__(self, value: str, group: str) -> None:
        self.value = value
        self.group = group
        super().__init__(f"unknown value {value} for group {group}")


@dataclass(frozen=True)
class Tuning:
    """A recipe tuning request: enable, disable, or enable with a config value."""

    action: str
    config: Optional[str] = None

    ENABLE: ClassVar["Tuning"]
    DISABLE: ClassVar["Tuning"]


Tuning.ENABLE = Tuning("enable")
Tuning.DISABLE = Tuning("disable")


def parse_tuning_entry(value: Any) -> KeyValue[Tuning]:
    """Parse `name`, `{name: bool}` or `{name: config}`."""
    if isinstance(value, str):
        return KeyValue(value, Tuning.ENABLE)
    if isinstance(value, Mapping):
        entries = []
        for key, item in value.items():
            if not isinstance(key, str):
                raise RecipeError(f"expected a string key, got {key!r}")
            if isinstance(item, bool):
                entries.append(KeyValue(key, Tuning.ENABLE if item else Tuning.DISABLE))
            elif isinstance(item, str):
                entries.append(KeyValue(key, Tuning("config", item)))
            else:
                raise RecipeError(f"invalid tuning value for {key}")
        if not entries:
            raise RecipeError("missing tuning entry")
        return entries[0]
    raise RecipeError("expected a tuning name or a mapping")


class CompilerFlag(enum.Enum):
    C = "c"
    CXX = "cxx"
    D = "d"
    LD = "ld"


class Toolchain(enum.Enum):
    LLVM = "llvm"
    GNU = "gnu"


@dataclass(frozen=True)
class CompilerFlags:
    c: Optional[str] = None
    cxx: Optional[str] = None
    d: Optional[str] = None
    ld: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Any) -> "CompilerFlags":
        data = _mapping(data, "compiler flags")
        return cls(
            c=_optional_str(data, "c"),
            cxx=_optional_str(data, "cxx"),
            d=_optional_str(data, "d"),
            ld=_optional_str(data, "ld"),
        )

    def get(self, flag: CompilerFlag) -> Optional[str]:
        return getattr(self, flag.value)


@dataclass(frozen=True)
class TuningFlag:
    """Compiler flags with optional toolchain specific overrides."""

    root: CompilerFlags = field(default_factory=CompilerFlags)
    gnu: CompilerFlags = field(default_factory=CompilerFlags)
    llvm: CompilerFlags = field(default_factory=CompilerFlags)

    @classmethod
    def from_mapping(cls, data: Any) -> "TuningFlag":
        data = _mapping(data, "tuning flag")
        return cls(
            root=CompilerFlags.from_mapping(data),
            gnu=CompilerFlags.from_mapping(data.get("gnu")),
            llvm=CompilerFlags.from_mapping(data.get("llvm")),
        )

    def get(self, flag: CompilerFlag, toolchain: Toolchain) -> Optional[str]:
        """The toolchain specific value, falling back to the common one."""
        specific = self.llvm if toolchain is Toolchain.LLVM else self.gnu
        value = specific.get(flag)
        return value if value is not None else self.root.get(flag)


@dataclass
class TuningOption:
    enabled: list[str] = field(default_factory=list)
    disabled: list[str] = field(default_factory=list)

    @classmethod
    def from_mapping(cls, data: Any) -> "TuningOption":
        data = _mapping(data, "tuning option")
        enabled = data.get("enabled")
        disabled = data.get("disabled")
        return cls(
            enabled=[] if enabled is None else single_as_sequence(enabled),
            disabled=[] if disabled is None else single_as_sequence(disabled),
        )


@dataclass
class TuningGroup:
    """A named group of flags with an optional set of alternative choices."""

    root: TuningOption = field(default_factory=TuningOption)
    default: Optional[str] = None
    choices: list[KeyValue[TuningOption]] = field(default_factory=list)

    @classmethod
    def from_mapping(cls, data: Any) -> "TuningGroup":
        data = _mapping(data, "tuning group")
        return cls(
            root=TuningOption.from_mapping(data),
            default=_optional_str(data, "default"),
            choices=sequence_of_key_value(data.get("options"), TuningOption.from_mapping),
        )


class Builder:
    """Collects flags and groups, tracks which groups are on, and resolves flags."""

    def __init__(self) -> None:
        self.flags: dict[str, TuningFlag] = {}
        self.groups: dict[str, TuningGroup] = {}
        self.enabled: set[str] = set()
        self.disabled: set[str] = set()
        self.option_sets: dict[str, str] = {}

    def add_flag(self, name: str, flag: TuningFlag) -> None:
        self.flags[str(name)] = flag

    def add_group(self, name: str, group: TuningGroup) -> None:
        self.groups[str(name)] = group

    def add_macros(self, macros: Any) -> None:
        """Register the flags and tuning groups of a macros document."""
        for entry in macros.flags:
            self.add_flag(entry.key, entry.value)
        for entry in macros.tuning:
            self.add_group(entry.key, entry.value)

    def enable(self, name: str, config: Optional[str] = None) -> None:
        """Enable a group, choosing `config` or the group's default option."""
        name = str(name)
        group = self.groups.get(name)
        if group is None:
            raise UnknownGroupError(name)

        self.enabled.add(name)
        self.disabled.discard(name)

        value = config if config is not None else group.default
        if value is not None:
            if not any(choice.key == value for choice in group.choices):
                raise UnknownGroupValueError(value, name)
            self.option_sets[name] = value

    def disable(self, name: str) -> None:
        name = str(name)
        if name not in self.groups:
            raise UnknownGroupError(name)
        self.disabled.add(name)
        self.enabled.discard(name)
        self.option_sets.pop(name, None)

    def build(self) -> list[TuningFlag]:
        """The flags selected by enabled and disabled groups, ordered by name."""
        names: set[str] = set()

        for enabled in self.enabled:
            group = self.groups.get(enabled)
            if group is None:
                continue
            option = group.root
            chosen = self.option_sets.get(enabled)
            if chosen is not None:
                option = next(
                    (choice.value for choice in group.choices if choice.key == chosen),
                    option,
                )
            names.update(option.enabled)

        for disabled in self.disabled:
            group = self.groups.get(disabled)
            if group is not None:
                names.update(group.root.disabled)

        ordered = sorted(names)
        for flag in ordered:
            if flag not in self.flags:
                raise UnknownFlagError(flag)
        return [self.flags[flag] for flag in ordered]