"""Interactive picker over history entries and snippets, backed by fzf."""

from __future__ import annotations

import shutil
import sqlite3
import subprocess
from dataclasses import dataclass, field
from typing import Iterable

from histkit.index import query_recent_history_entries
from histkit.snippets import Snippet, SnippetStore, builtins

LABEL_HISTORY = "[history]"
LABEL_SNIPPET = "[snippet]"

_NO_SELECTION_CODES = frozenset({1, 130})


class PickerError(RuntimeError):
    """Raised when a selection cannot be made or understood."""


@dataclass
class Candidate:
    """One line offered to the picker."""

    label: str
    command: str
    history_id: str = ""
    snippet_id: str = ""
    title: str = ""
    description: str = ""
    safety: str = ""
    tags: list[str] = field(default_factory=list)

    def display(self) -> str:
        return f"{self.label}  {self.command}"


def _merge_snippets(user: list[Snippet], include_builtins: bool) -> list[Snippet]:
    merged = list(user)
    if not include_builtins:
        return merged
    seen = {snippet.id for snippet in user}
    for snippet in builtins():
        if snippet.id not in seen:
            merged.append(snippet)
            seen.add(snippet.id)
    return merged


def load_candidates(
    db: sqlite3.Connection | None,
    store: SnippetStore,
    snippets_enabled: bool,
    include_builtins: bool,
    history_limit: int,
) -> list[Candidate]:
    """Recent history first, then user snippets, then missing built-ins."""
    entries = query_recent_history_entries(db, history_limit)
    user_snippets = store.list() if snippets_enabled else []
    merged = _merge_snippets(user_snippets, snippets_enabled and include_builtins)

    candidates = [
        Candidate(label=LABEL_HISTORY, command=entry.command, history_id=entry.id)
        for entry in entries
    ]
    candidates.extend(
        Candidate(
            label=LABEL_SNIPPET,
            command=snippet.command,
            snippet_id=snippet.id,
            title=snippet.title,
            description=snippet.description,
            safety=snippet.safety,
            tags=list(snippet.tags),
        )
        for snippet in merged
    )
    return candidates


def parse_selected_line(line: str) -> Candidate:
    """Turn a displayed line back into a labelled candidate."""
    for label in (LABEL_HISTORY, LABEL_SNIPPET):
        if len(line) >= len(label) + 2 and line.startswith(label):
            return Candidate(label=label, command=line[len(label) + 2 :])
    raise PickerError("parse selected line: unsupported candidate format")


def select(candidates: Iterable[Candidate]) -> Candidate | None:
    """Let the user pick one candidate with fzf; None when nothing was chosen."""
    offered = list(candidates)
    if not offered:
        return None

    executable = shutil.which("fzf")
    if executable is None:
        raise PickerError("find fzf: executable file not found in $PATH")

    feed = "\n".join(candidate.display() for candidate in offered) + "\n"
    try:
        completed = subprocess.run(
            [executable], input=feed, capture_output=True, text=True, check=False
        )
    except OSError as exc:
        raise PickerError(f"run fzf: {exc}") from exc

    if completed.returncode != 0:
        if completed.returncode in _NO_SELECTION_CODES:
            return None
        if completed.stderr:
            raise PickerError(f"run fzf: {completed.stderr.strip()}")
        raise PickerError(f"run fzf: exit status {completed.returncode}")

    line = completed.stdout.rstrip("\r\n")
    if not line:
        return None
    return parse_selected_line(line)