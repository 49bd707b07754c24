# histkit

histkit is a library for working with bash and zsh command history. It has
four modules:

- `histkit.index` keeps history entries in a SQLite database and answers
  queries about them.
- `histkit.rules` defines sanitization rules and comes with built-in rule
  sets for secrets and trivial commands.
- `histkit.snippets` stores reusable command templates in a TOML file.
- `histkit.picker` shows history entries and snippets in `fzf` and returns
  the line the user picks.

## Installation

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

You need Python 3.11 or later. The picker also needs the `fzf` executable on
your `PATH`.

## Indexing history

```python
from datetime import datetime, timezone

from histkit.index import (
    HistoryEntry,
    init_schema,
    open_database,
    query_history_stats,
    query_recent_history_entries,
    write_history_entries,
)

db = open_database("/tmp/histkit/histkit.db")
init_schema(db)

result = write_history_entries(
    db,
    [
        HistoryEntry(
            shell="bash",
            source_file="/home/tester/.bash_history",
            raw_line="git status",
            command="git status",
        )
    ],
    datetime.now(timezone.utc),
)
print(result.attempted, result.inserted, result.skipped)

for entry in query_recent_history_entries(db, 10):
    print(entry.id, entry.command)

stats = query_history_stats(db)
print(stats.total_entries, stats.by_shell, stats.by_source)
```

- `open_database(path)` creates the parent directories and the file if they
  do not exist, and returns a `sqlite3.Connection` in autocommit mode.
- `init_schema(db)` creates the `history_entries` and `runs` tables and
  their indexes, and sets `PRAGMA user_version` to `SCHEMA_VERSION` (1).
  You can call it again safely.
- `write_history_entries(db, entries, ingested_at=None)` writes all entries
  in a single transaction. It raises `IndexStoreError` if any entry has no
  shell, source file or command, and in that case writes nothing.
  `ingested_at` defaults to the current UTC time.
  - An entry with no hash gets `hash_command(command)`, the hex SHA-256 of
    the command.
  - An entry with no ID gets `derive_entry_id(entry)`, which is `entry-`
    followed by a SHA-256 over all of the entry's fields.
  - An entry whose source file and hash are already stored is counted as
    skipped and not inserted again.
  - Timestamps are stored as RFC 3339 strings in UTC.
- `query_recent_history_entries(db, limit)` returns entries newest first,
  ordered by timestamp, or by ingestion time when an entry has no
  timestamp. `limit` must be positive.
- `query_history_stats(db)` returns a `HistoryStats` with the total count,
  and with `GroupCount` lists per shell and per source file. Each list is
  sorted by count, largest first, then by name.

Every function raises `IndexStoreError` when it is given `None` in place of
a database, and when SQLite reports an error.

## Sanitization rules

`histkit.rules` defines these types:

- `Rule`: a name, a `RuleType` (`exact`, `contains`, `regex`,
  `keyword_group`, `heuristic`), a pattern, keywords or a detector name, an
  `ActionType` (`keep`, `delete`, `redact`, `quarantine`), a `Confidence`
  (`low`, `medium`, `high`) and a reason.
- `RuleMatch`: the rule name, reason, confidence and action, and the command
  before and after the rule was applied.

`Rule.validate()` and `RuleMatch.validate()` return the object when it is
valid and raise `RuleError` when it is not. `Rule.validate()` rejects:

- an `exact`, `contains` or `regex` rule with no pattern;
- a regex that does not compile;
- a `keyword_group` rule with no keywords, or with a blank keyword;
- a `heuristic` rule with no detector.

`validate_rules(rules)` also rejects duplicate names.

There are two built-in rule sets:

- `builtin_secret_rules()`: rules for OpenSSH private key blocks, bearer
  tokens, inline password flags, credentials embedded in URLs, AWS access key
  IDs, and a `high_entropy_token` heuristic.
- `builtin_trivial_rules()`: exact-match rules for `clear`, `pwd`, `ls` and
  `ll`, and a `large_paste_blob` heuristic.

## Snippets

```python
from histkit.snippets import Snippet, SnippetStore, builtins, import_builtins

store = SnippetStore("/tmp/histkit/snippets.toml")
store.add(
    Snippet(
        id="echo-test",
        title="Echo test",
        command="echo test",
        description="Emit a test string",
        safety="low",
    )
)
added = import_builtins(store)  # built-ins whose id is not in the store yet
print(added, [s.id for s in store.list()])
store.remove("echo-test")
```

- Snippets are saved as `[[snippets]]` tables. The file is written with
  mode `0600`.
- `list()` returns an empty list when the file does not exist.
- `save()` and `list()` validate the whole collection.
  `Snippet.validate()` requires an id, title, command, description and a
  safety of `low`, `medium` or `high`. Tags, shells and placeholder keys
  must not be blank.
- `validate_collection()` also rejects duplicate ids.
- `remove()` raises `SnippetError` for an id that is not in the store.
- `import_builtins()` never overwrites a snippet that already has the same
  id, and running it a second time adds nothing.

## Picking a command

```python
from histkit.picker import load_candidates, select

candidates = load_candidates(db, store, True, True, 200)
chosen = select(candidates)
if chosen is not None:
    print(chosen.label, chosen.command)
```

`load_candidates(db, store, snippets_enabled, include_builtins,
history_limit)` returns a list in this order:

1. the most recent history entries, labelled `[history]`;
2. the user's snippets, labelled `[snippet]`;
3. when both flags are true, the built-in snippets whose id the user has not
   already used.

Each candidate is shown as `"<label>  <command>"` by `Candidate.display()`.
`parse_selected_line(line)` turns such a line back into a `Candidate` with
only its label and command set. For any other format it raises
`PickerError`.

`select(candidates)` returns `None` in these cases:

- the list is empty;
- `fzf` exits with status 1 or 130;
- `fzf` prints nothing.

It raises `PickerError` when `fzf` is not on `PATH` or fails in any other
way.

## What the package does not do

- histkit has no command-line program. It is used only as a library.
- It does not read or parse bash or zsh history files. You must build the
  `HistoryEntry` objects yourself before you write them to the index.
- `histkit.rules` only defines and validates rules. It does not run rules
  against commands, redact text, or rewrite history files.