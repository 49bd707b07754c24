"""Command snippets: model, built-in set and a TOML-backed store."""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable

import tomli_w

SAFETY_LOW = "low"
SAFETY_MEDIUM = "medium"
SAFETY_HIGH = "high"

_SAFETY_LEVELS = frozenset({SAFETY_LOW, SAFETY_MEDIUM, SAFETY_HIGH})


class SnippetError(ValueError):
    """Raised for invalid snippets or snippet store failures."""


def _blank(value: object) -> bool:
    return not isinstance(value, str) or not value.strip()


@dataclass
class Snippet:
    """A reusable command template."""

    id: str = ""
    title: str = ""
    command: str = ""
    description: str = ""
    tags: list[str] = field(default_factory=list)
    placeholders: dict[str, str] = field(default_factory=dict)
    shells: list[str] = field(default_factory=list)
    safety: str = ""

    def validate(self) -> Snippet:
        """Return the snippet unchanged if it is valid; raise SnippetError otherwise."""
        if _blank(self.id):
            raise SnippetError("snippet id is required")
        if _blank(self.title):
            raise SnippetError("snippet title is required")
        if _blank(self.command):
            raise SnippetError("snippet command is required")
        if _blank(self.description):
            raise SnippetError("snippet description is required")
        if _blank(self.safety):
            raise SnippetError("snippet safety is required")
        if self.safety not in _SAFETY_LEVELS:
            raise SnippetError(f"snippet safety {self.safety!r} is invalid")
        if any(_blank(tag) for tag in self.tags):
            raise SnippetError("snippet tags must not contain empty values")
        if any(_blank(shell) for shell in self.shells):
            raise SnippetError("snippet shells must not contain empty values")
        if any(_blank(key) for key in self.placeholders):
            raise SnippetError("snippet placeholders must not contain empty keys")
        return self


def validate_collection(snippets: Iterable[Snippet]) -> list[Snippet]:
    """Validate every snippet and reject duplicate ids; return them as a list."""
    checked: list[Snippet] = []
    seen: set[str] = set()
    for snippet in snippets:
        snippet.validate()
        if snippet.id in seen:
            raise SnippetError(f"duplicate snippet id {snippet.id!r}")
        seen.add(snippet.id)
        checked.append(snippet)
    return checked


def builtins() -> list[Snippet]:
    """The snippets shipped with the tool."""
    return [
        Snippet(
            id="find-delete-pyc",
            title="Delete Python cache files",
            command="find {{path}} -type f -name '*.pyc' -delete",
            description="Delete .pyc files under a target path",
            tags=["find", "python", "cleanup"],
            shells=["bash", "zsh"],
            safety=SAFETY_MEDIUM,
        ),
        Snippet(
            id="git-clean-merged-branches",
            title="Delete merged Git branches",
            command="git branch --merged | grep -v '\\*\\|main\\|master' | xargs -r git branch -d",
            description="Delete local Git branches that are already merged",
            tags=["git", "cleanup"],
            shells=["bash", "zsh"],
            safety=SAFETY_HIGH,
        ),
        Snippet(
            id="find-large-files",
            title="Find large files",
            command="find {{path}} -type f -size +{{size}} -print",
            description="List files above a chosen size threshold",
            tags=["find", "disk", "inspection"],
            shells=["bash", "zsh"],
            safety=SAFETY_LOW,
        ),
    ]


def _string_field(table: dict[str, Any], key: str) -> str:
    value = table.get(key, "")
    if not isinstance(value, str):
        raise SnippetError(f"snippet field {key!r} must be a string")
    return value


def _string_list(table: dict[str, Any], key: str) -> list[str]:
    value = table.get(key, [])
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise SnippetError(f"snippet field {key!r} must be a list of strings")
    return list(value)


def _snippet_from_table(raw: Any) -> Snippet:
    if not isinstance(raw, dict):
        raise SnippetError("snippet entries must be tables")
    table = {str(key).lower(): value for key, value in raw.items()}
    placeholders = table.get("placeholders", {})
    if not isinstance(placeholders, dict) or not all(
        isinstance(value, str) for value in placeholders.values()
    ):
        raise SnippetError("snippet field 'placeholders' must be a table of strings")
    return Snippet(
        id=_string_field(table, "id"),
        title=_string_field(table, "title"),
        command=_string_field(table, "command"),
        description=_string_field(table, "description"),
        tags=_string_list(table, "tags"),
        placeholders=dict(placeholders),
        shells=_string_list(table, "shells"),
        safety=_string_field(table, "safety"),
    )


def _snippet_to_table(snippet: Snippet) -> dict[str, Any]:
    table: dict[str, Any] = {
        "id": snippet.id,
        "title": snippet.title,
        "command": snippet.command,
        "description": snippet.description,
    }
    if snippet.tags:
        table["tags"] = list(snippet.tags)
    if snippet.placeholders:
        table["placeholders"] = dict(snippet.placeholders)
    if snippet.shells:
        table["shells"] = list(snippet.shells)
    table["safety"] = snippet.safety
    return table


@dataclass(frozen=True)
class SnippetStore:
    """Snippets kept in a TOML file under a [[snippets]] array."""

    path: str | os.PathLike[str] = ""

    def _require_path(self) -> Path:
        if not os.fspath(self.path):
            raise SnippetError("snippet store path is required")
        return Path(self.path)

    def list(self) -> list[Snippet]:
        """Load the stored snippets; a missing file holds none."""
        path = self._require_path()
        try:
            with path.open("rb") as handle:
                document = tomllib.load(handle)
        except FileNotFoundError:
            return []
        except OSError as exc:
            raise SnippetError(f"stat snippet store {str(path)!r}: {exc}") from exc
        except tomllib.TOMLDecodeError as exc:
            raise SnippetError(f"load snippet store {str(path)!r}: {exc}") from exc

        lowered = {key.lower(): value for key, value in document.items()}
        entries = lowered.get("snippets", [])
        try:
            if not isinstance(entries, list):
                raise SnippetError("'snippets' must be an array of tables")
            snippets = [_snippet_from_table(entry) for entry in entries]
            return validate_collection(snippets)
        except SnippetError as exc:
            raise SnippetError(f"load snippet store {str(path)!r}: {exc}") from exc

    def save(self, snippets: Iterable[Snippet]) -> None:
        """Validate and write the given snippets, replacing the file."""
        path = self._require_path()
        try:
            checked = validate_collection(snippets)
        except SnippetError as exc:
            raise SnippetError(f"save snippet store {str(path)!r}: {exc}") from exc

        content = tomli_w.dumps({"snippets": [_snippet_to_table(s) for s in checked]})
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(content)
        except OSError as exc:
            raise SnippetError(f"save snippet store {str(path)!r}: {exc}") from exc

    def add(self, snippet: Snippet) -> None:
        """Append one snippet to the store."""
        self.save([*self.list(), snippet])

    def remove(self, snippet_id: str) -> None:
        """Remove the snippet with the given id; raise if it is absent."""
        if not snippet_id:
            raise SnippetError("snippet id is required")
        snippets = self.list()
        remaining = [snippet for snippet in snippets if snippet.id != snippet_id]
        if len(remaining) == len(snippets):
            raise SnippetError(f"snippet {snippet_id!r} not found")
        self.save(remaining)


def import_builtins(store: SnippetStore) -> int:
    """Add built-in snippets missing from the store; return how many were added."""
    if not os.fspath(store.path):
        raise SnippetError("snippet store path is required")

    existing = store.list()
    seen = {snippet.id for snippet in existing}
    missing = []
    for snippet in builtins():
        if snippet.id not in seen:
            missing.append(snippet)
            seen.add(snippet.id)

    if missing:
        store.save([*existing, *missing])
    return len(missing)