"""Shell history index in SQLite, sanitization rule definitions, TOML-stored snippets and an fzf picker."""

__version__ = "0.1.0"
__all__ = ["index", "picker", "rules", "snippets"]