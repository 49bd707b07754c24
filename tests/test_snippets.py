import pytest

from histkit.snippets import (
    SAFETY_HIGH,
    SAFETY_LOW,
    SAFETY_MEDIUM,
    Snippet,
    SnippetError,
    SnippetStore,
    builtins,
    import_builtins,
    validate_collection,
)

PYC_COMMAND = "find {{path}} -type f -name '*.pyc' -delete"
BRANCH_COMMAND = "git branch --merged | grep -v '\\*\\|main\\|master' | xargs -r git branch -d"


@pytest.fixture
def store(tmp_path):
    return SnippetStore(tmp_path / "snippets.toml")


def test_snippet_validate():
    snippet = Snippet(
        id="find-delete-pyc",
        title="Delete Python cache files",
        command=PYC_COMMAND,
        description="Delete .pyc files under a path",
        tags=["find", "python", "cleanup"],
        placeholders={"path": "."},
        shells=["bash", "zsh"],
        safety=SAFETY_MEDIUM,
    )
    assert snippet.validate() is snippet
    assert snippet.command == PYC_COMMAND


INVALID_SNIPPET_FIELDS = {
    "missing id": dict(title="Title", command="echo hi", description="desc", safety=SAFETY_LOW),
    "missing title": dict(id="snippet-001", command="echo hi", description="desc", safety=SAFETY_LOW),
    "missing command": dict(id="snippet-001", title="Title", description="desc", safety=SAFETY_LOW),
    "missing description": dict(id="snippet-001", title="Title", command="echo hi", safety=SAFETY_LOW),
    "missing safety": dict(id="snippet-001", title="Title", command="echo hi", description="desc"),
    "invalid safety": dict(id="snippet-001", title="Title", command="echo hi",
                           description="desc", safety="critical"),
    "empty tag": dict(id="snippet-001", title="Title", command="echo hi", description="desc",
                      tags=["shell", " "], safety=SAFETY_LOW),
    "empty shell": dict(id="snippet-001", title="Title", command="echo hi", description="desc",
                        shells=["bash", ""], safety=SAFETY_LOW),
    "empty placeholder key": dict(id="snippet-001", title="Title", command="echo hi",
                                  description="desc", placeholders={"": "value"}, safety=SAFETY_LOW),
}


@pytest.mark.parametrize("fields", INVALID_SNIPPET_FIELDS.values(), ids=list(INVALID_SNIPPET_FIELDS))
def test_snippet_validate_requires_fields(fields):
    snippet = Snippet(**fields)
    with pytest.raises(SnippetError):
        snippet.validate()


def test_validate_collection_rejects_duplicate_ids():
    snippets = [
        Snippet(id="dup-id", title="One", command="echo one", description="first", safety=SAFETY_LOW),
        Snippet(id="dup-id", title="Two", command="echo two", description="second", safety=SAFETY_MEDIUM),
    ]
    with pytest.raises(SnippetError, match="duplicate snippet id"):
        validate_collection(snippets)


def test_validate_collection_accepts_distinct_snippets():
    snippets = [
        Snippet(id="find-delete-pyc", title="Delete Python cache files", command=PYC_COMMAND,
                description="Delete .pyc files under a path", safety=SAFETY_MEDIUM),
        Snippet(id="git-clean-branches", title="Delete merged branches", command=BRANCH_COMMAND,
                description="Delete local branches already merged", safety=SAFETY_HIGH),
    ]
    assert validate_collection(snippets) == snippets


def test_builtins_validate():
    snippets = builtins()
    assert len(snippets) > 0
    assert validate_collection(snippets) == snippets


def test_import_builtins_seeds_missing_snippets(store):
    assert import_builtins(store) == len(builtins())
    assert len(store.list()) == len(builtins())


def test_import_builtins_does_not_overwrite_existing_snippet(store):
    custom = Snippet(
        id="find-delete-pyc",
        title="Custom Python cleanup",
        command="echo custom",
        description="A user override-like entry that should remain unchanged",
        safety=SAFETY_LOW,
    )
    store.save([custom])

    assert import_builtins(store) == len(builtins()) - 1

    found = [s for s in store.list() if s.id == custom.id]
    assert len(found) == 1
    assert found[0].command == custom.command


def test_import_builtins_idempotent(store):
    assert import_builtins(store) > 0
    assert import_builtins(store) == 0


def test_import_builtins_requires_path():
    with pytest.raises(SnippetError, match="path is required"):
        import_builtins(SnippetStore(""))


def test_store_list_missing_file_returns_empty(store):
    assert store.list() == []


def test_store_requires_path():
    with pytest.raises(SnippetError, match="path is required"):
        SnippetStore("").list()


def test_store_save_and_list_round_trip(store):
    snippets = [
        Snippet(
            id="find-delete-pyc",
            title="Delete Python cache files",
            command=PYC_COMMAND,
            description="Delete .pyc files under a path",
            tags=["find", "python", "cleanup"],
            placeholders={"path": "."},
            shells=["bash", "zsh"],
            safety=SAFETY_MEDIUM,
        )
    ]
    store.save(snippets)

    loaded = store.list()
    assert loaded == snippets
    assert loaded[0].command == PYC_COMMAND
    assert "[[snippets]]" in store.path.read_text(encoding="utf-8")


def test_store_list_rejects_duplicate_ids(store):
    content = """
[[snippets]]
id = "dup-id"
title = "One"
command = "echo one"
description = "first"
safety = "low"

[[snippets]]
id = "dup-id"
title = "Two"
command = "echo two"
description = "second"
safety = "medium"
"""
    store.path.write_text(content.strip(), encoding="utf-8")
    with pytest.raises(SnippetError, match="duplicate snippet id"):
        store.list()


def test_store_list_rejects_malformed_toml(store):
    store.path.write_text("[[snippets]\nid = ", encoding="utf-8")
    with pytest.raises(SnippetError, match="load snippet store"):
        store.list()


def test_store_save_rejects_invalid_and_writes_nothing(store):
    with pytest.raises(SnippetError, match="save snippet store"):
        store.save([Snippet(id="x", title="t", command="c", description="d", safety="bogus")])
    assert not store.path.exists()


def test_store_add_and_remove(store):
    first = Snippet(id="find-delete-pyc", title="Delete Python cache files", command=PYC_COMMAND,
                    description="Delete .pyc files under a path", safety=SAFETY_MEDIUM)
    second = Snippet(id="git-clean-branches", title="Delete merged branches", command=BRANCH_COMMAND,
                     description="Delete local branches already merged", safety=SAFETY_HIGH)

    store.add(first)
    store.add(second)
    store.remove(first.id)

    loaded = store.list()
    assert [s.id for s in loaded] == [second.id]
    assert loaded[0].command == BRANCH_COMMAND


def test_store_remove_missing_id_fails(store):
    with pytest.raises(SnippetError, match="not found"):
        store.remove("missing-id")


def test_store_remove_requires_id(store):
    with pytest.raises(SnippetError, match="id is required"):
        store.remove("")