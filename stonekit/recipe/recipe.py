"""Build recipes: source details, build steps, options, upstreams and packages."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Any, Mapping, Optional, Union
from urllib.parse import urlsplit

import yaml

from stonekit.recipe.common import (
    KeyValue,
    Package,
    RecipeError,
    _mapping,
    _optional_str,
    _string_list,
    force_string,
    sequence_of_key_value,
    single_as_sequence,
    stringy_bool,
)
from stonekit.recipe.tuning import Toolchain, Tuning, parse_tuning_entry

_SCHEME = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*:")
_HOSTED_SCHEMES = frozenset({"http", "https", "ftp", "ws", "wss"})
_TIMESTAMP_TAG = "tag:yaml.org,2002:timestamp"


class _Loader(yaml.SafeLoader):
    """Safe loader that keeps date-like scalars as plain strings."""


_Loader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag != _TIMESTAMP_TAG]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


def _required(data: Mapping[str, Any], key: str) -> Any:
    value = data.get(key)
    if value is None:
        raise RecipeError(f"missing field `{key}`")
    return value


def _required_str(data: Mapping[str, Any], key: str) -> str:
    value = _required(data, key)
    if not isinstance(value, str):
        raise RecipeError(f"{key}: expected a string")
    return value


def _optional_path(data: Mapping[str, Any], key: str) -> Optional[PurePosixPath]:
    value = _optional_str(data, key)
    return None if value is None else PurePosixPath(value)


def _bool_field(data: Mapping[str, Any], key: str, default: bool) -> bool:
    value = data.get(key)
    return default if value is None else stringy_bool(value)


def _parse_url(text: str) -> str:
    if not _SCHEME.match(text):
        raise RecipeError(f"invalid uri: relative URL without a base: {text!r}")
    parts = urlsplit(text)
    if parts.scheme.lower() in _HOSTED_SCHEMES and not parts.hostname:
        raise RecipeError(f"invalid uri: empty host: {text!r}")
    return text


@dataclass
class Source:
    """Identity of the source package."""

    name: str
    version: str
    release: int
    homepage: str
    license: list[str]

    @classmethod
    def from_mapping(cls, data: Any) -> "Source":
        data = _mapping(data, "source")
        release = _required(data, "release")
        if isinstance(release, bool) or not isinstance(release, int) or release < 0:
            raise RecipeError("release: expected a non-negative integer")
        return cls(
            name=_required_str(data, "name"),
            version=force_string(_required(data, "version")),
            release=release,
            homepage=_required_str(data, "homepage"),
            license=single_as_sequence(_required(data, "license")),
        )


@dataclass
class Build:
    """Build steps and the dependencies they need."""

    setup: Optional[str] = None
    build: Optional[str] = None
    install: Optional[str] = None
    check: Optional[str] = None
    workload: Optional[str] = None
    environment: Optional[str] = None
    build_deps: list[str] = field(default_factory=list)
    check_deps: list[str] = field(default_factory=list)

    @classmethod
    def from_mapping(cls, data: Any) -> "Build":
        data = _mapping(data, "build")
        return cls(
            setup=_optional_str(data, "setup"),
            build=_optional_str(data, "build"),
            install=_optional_str(data, "install"),
            check=_optional_str(data, "check"),
            workload=_optional_str(data, "workload"),
            environment=_optional_str(data, "environment"),
            build_deps=_string_list(data, "builddeps"),
            check_deps=_string_list(data, "checkdeps"),
        )


@dataclass
class Options:
    """Build options: toolchain, PGO modes, stripping and networking."""

    toolchain: Toolchain = Toolchain.LLVM
    cspgo: bool = False
    samplepgo: bool = False
    strip: bool = True
    networking: bool = False

    @classmethod
    def from_mapping(cls, data: Any) -> "Options":
        data = _mapping(data, "options")
        raw_toolchain = data.get("toolchain")
        if raw_toolchain is None:
            toolchain = Toolchain.LLVM
        else:
            try:
                toolchain = Toolchain(raw_toolchain)
            except ValueError:
                raise RecipeError(f"invalid toolchain: {raw_toolchain!r}") from None
        return cls(
            toolchain=toolchain,
            cspgo=_bool_field(data, "cspgo", False),
            samplepgo=_bool_field(data, "samplepgo", False),
            strip=_bool_field(data, "strip", True),
            networking=_bool_field(data, "networking", False),
        )


@dataclass(frozen=True)
class PlainUpstream:
    """A downloadable source archive or file."""

    uri: str
    hash: str
    rename: Optional[str] = None
    strip_dirs: Optional[int] = None
    unpack: bool = True
    unpack_dir: Optional[PurePosixPath] = None


@dataclass(frozen=True)
class GitUpstream:
    """A git repository checked out at a given ref."""

    uri: str
    ref_id: str
    clone_dir: Optional[PurePosixPath] = None
    staging: bool = True


Upstream = Union[PlainUpstream, GitUpstream]


def _plain_fields(data: Mapping[str, Any]) -> dict[str, Any]:
    strip_dirs = data.get("stripdirs")
    if strip_dirs is not None and (
        isinstance(strip_dirs, bool) or not isinstance(strip_dirs, int) or not 0 <= strip_dirs <= 255
    ):
        raise RecipeError("stripdirs: expected an integer from 0 to 255")
    return {
        "hash": _required_str(data, "hash"),
        "rename": _optional_str(data, "rename"),
        "strip_dirs": strip_dirs,
        "unpack": _bool_field(data, "unpack", True),
        "unpack_dir": _optional_path(data, "unpackdir"),
    }


def _git_fields(data: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "ref_id": _required_str(data, "ref"),
        "clone_dir": _optional_path(data, "clonedir"),
        "staging": _bool_field(data, "staging", True),
    }


def _upstream_entry(key: Any, value: Any) -> Upstream:
    if not isinstance(key, str):
        raise RecipeError(f"upstream: expected a string uri, got {key!r}")
    is_git = "git|" in key
    uri = _parse_url(key.split("git|", 1)[1] if is_git else key)

    if isinstance(value, str):
        return GitUpstream(uri, value) if is_git else PlainUpstream(uri, value)
    if not isinstance(value, Mapping):
        raise RecipeError("upstream: expected a hash, a ref or a mapping")

    try:
        fields = _plain_fields(value)
        value_is_git = False
    except RecipeError:
        try:
            fields = _git_fields(value)
            value_is_git = True
        except RecipeError:
            raise RecipeError("upstream: data did not match any variant") from None

    if is_git and not value_is_git:
        raise RecipeError("found git URI but plain payload fields")
    if value_is_git and not is_git:
        raise RecipeError("found git payload but missing 'git|' prefixed URI")
    return GitUpstream(uri, **fields) if is_git else PlainUpstream(uri, **fields)


def parse_upstream(value: Any) -> Upstream:
    """Parse a single-entry mapping of uri to hash, ref or detailed fields."""
    if not isinstance(value, Mapping):
        raise RecipeError("upstream: expected a mapping")
    entries = [_upstream_entry(key, item) for key, item in value.items()]
    if not entries:
        raise RecipeError("missing upstream entry")
    return entries[0]


def _sequence(data: Mapping[str, Any], key: str) -> list[Any]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise RecipeError(f"{key}: expected a sequence")
    return value


@dataclass
class Recipe:
    """A complete build recipe."""

    source: Source
    build: Build
    package: Package
    options: Options
    profiles: list[KeyValue[Build]] = field(default_factory=list)
    sub_packages: list[KeyValue[Package]] = field(default_factory=list)
    upstreams: list[Upstream] = field(default_factory=list)
    architectures: list[str] = field(default_factory=list)
    tuning: list[KeyValue[Tuning]] = field(default_factory=list)
    emul32: bool = False

    @classmethod
    def from_mapping(cls, data: Any) -> "Recipe":
        data = _mapping(data, "recipe")
        return cls(
            source=Source.from_mapping(data),
            build=Build.from_mapping(data),
            package=Package.from_mapping(data),
            options=Options.from_mapping(data),
            profiles=sequence_of_key_value(data.get("profiles"), Build.from_mapping),
            sub_packages=sequence_of_key_value(data.get("packages"), Package.from_mapping),
            upstreams=[parse_upstream(item) for item in _sequence(data, "upstreams")],
            architectures=_string_list(data, "architectures"),
            tuning=[parse_tuning_entry(item) for item in _sequence(data, "tuning")],
            emul32=_bool_field(data, "emul32", False),
        )


def from_str(text: str) -> Recipe:
    """Parse a YAML recipe document."""
    return from_bytes(text)


def from_bytes(data: Union[bytes, str]) -> Recipe:
    """Parse a YAML recipe document."""
    try:
        document = yaml.load(data, Loader=_Loader)
    except yaml.YAMLError as error:
        raise RecipeError(f"invalid YAML: {error}") from error
    return Recipe.from_mapping(document)