"""Expanding recipe scripts: action and definition macros, breakpoints."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterator, Optional, Union

from stonekit.recipe.macros import Action, Macros

_IDENT = r"[A-Za-z0-9_]+"
_LEXER = re.compile(
    rf"""
    (?P<newline>\n)
    | %(?P<action>{_IDENT})
    | %\((?P<definition>{_IDENT})\)
    | (?P<escaped>%%)
    | (?P<plain>.+?(?=\n|%%|%{_IDENT}|%\({_IDENT}\)) | .+)
    """,
    re.VERBOSE | re.DOTALL,
)
_BREAKS = {"break_continue": False, "break_exit": True}


class ScriptError(ValueError):
    """Base error for script expansion."""


class UnknownActionError(ScriptError):
    def __init__(self, identifier: str) -> None:
        self.identifier = identifier
        super().__init__(f"unknown action macro: %{identifier}")


class UnknownDefinitionError(ScriptError):
    def __init__(self, identifier: str) -> None:
        self.identifier = identifier
        super().__init__(f"unknown definition macro: %({identifier})")


class ScriptParseError(ScriptError):
    """The script cannot be split into pieces or expands a macro into itself."""


@dataclass(frozen=True)
class Content:
    """Shell content to execute."""

    text: str


@dataclass(frozen=True)
class Breakpoint:
    """A pause point at the given line; `exit` ends the build there."""

    line_num: int
    exit: bool


Command = Union[Content, Breakpoint]


@dataclass
class Script:
    """A fully expanded script."""

    commands: list[Command]
    dependencies: list[str]
    env: Optional[str] = None
    resolved_actions: dict[str, str] = field(default_factory=dict)
    resolved_definitions: dict[str, str] = field(default_factory=dict)


def _lex(text: str) -> Iterator[tuple[str, str]]:
    pos = 0
    while pos < len(text):
        match = _LEXER.match(text, pos)
        if match is None or match.end() == pos:
            raise ScriptParseError(f"parse script: unexpected input at offset {pos}")
        kind = match.lastgroup
        assert kind is not None
        if kind == "escaped":
            yield "plain", "%"
        else:
            yield kind, match.group(kind)
        pos = match.end()


class _Expander:
    def __init__(self, actions: dict[str, Action], definitions: dict[str, str]) -> None:
        self.actions = actions
        self.definitions = definitions
        self._stack: list[str] = []

    def _nested(self, key: str, text: str, dependencies: set[str]) -> Optional[str]:
        if key in self._stack:
            raise ScriptParseError(f"parse script: recursive macro {key}")
        self._stack.append(key)
        try:
            return self.content_only(text, dependencies)
        finally:
            self._stack.pop()

    def content_only(self, text: str, dependencies: set[str]) -> Optional[str]:
        commands, _ = self.parse(text, None, dependencies)
        if commands and isinstance(commands[0], Content):
            return commands[0].text
        return None

    def parse(
        self, text: str, env: Optional[str], dependencies: set[str]
    ) -> tuple[list[Command], Optional[str]]:
        resolved_env = None if env is None else self.content_only(env, dependencies)
        prefix = "" if resolved_env is None else f"{resolved_env}\n"

        commands: list[Command] = []
        parts: list[str] = []
        line_num = 0

        def flush() -> None:
            content = (prefix + "".join(parts)).strip()
            parts.clear()
            if content:
                commands.append(Content(content))

        for kind, value in _lex(text):
            if kind == "newline":
                line_num += 1
                parts.append("\n")
            elif kind == "action" and value in _BREAKS:
                flush()
                commands.append(Breakpoint(line_num=line_num, exit=_BREAKS[value]))
            elif kind == "action":
                action = self.actions.get(value)
                if action is None:
                    raise UnknownActionError(value)
                dependencies.update(action.dependencies)
                nested = self._nested(f"%{value}", action.command, dependencies)
                if nested is not None:
                    parts.append(nested)
            elif kind == "definition":
                definition = self.definitions.get(value)
                if definition is None:
                    raise UnknownDefinitionError(value)
                nested = self._nested(f"%({value})", definition, dependencies)
                if nested is not None:
                    parts.append(nested)
            else:
                parts.append(value)

        flush()
        return commands, resolved_env


class Parser:
    """Holds actions, definitions and an optional environment prelude."""

    def __init__(self) -> None:
        self.actions: dict[str, Action] = {}
        self.definitions: dict[str, str] = {}
        self.env: Optional[str] = None

    def with_env(self, env: str) -> "Parser":
        """Set an environment prelude, expanded and prepended to every content block."""
        self.env = str(env)
        return self

    def add_action(self, identifier: str, action: Action) -> None:
        self.actions[str(identifier)] = action

    def add_definition(self, identifier: str, definition: str) -> None:
        self.definitions[str(identifier)] = str(definition)

    def add_macros(self, macros: Macros) -> None:
        for entry in macros.actions:
            self.add_action(entry.key, entry.value)
        for entry in macros.definitions:
            self.add_definition(entry.key, entry.value)

    def parse(self, text: str) -> Script:
        """Expand `text` into commands, collecting action dependencies."""
        expander = _Expander(self.actions, self.definitions)
        dependencies: set[str] = set()
        commands, env = expander.parse(text, self.env, dependencies)

        resolved_actions = {}
        for identifier, action in self.actions.items():
            resolved = expander.content_only(action.command, set())
            if resolved is not None:
                resolved_actions[identifier] = resolved

        resolved_definitions = {}
        for identifier, definition in self.definitions.items():
            resolved = expander.content_only(definition, set())
            if resolved is not None:
                resolved_definitions[identifier] = resolved

        return Script(
            commands=commands,
            dependencies=sorted(dependencies),
            env=env,
            resolved_actions=resolved_actions,
            resolved_definitions=resolved_definitions,
        )