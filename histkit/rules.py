"""Sanitization rule model and the built-in rule sets."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum
from typing import Iterable


class RuleError(ValueError):
    """Raised when a rule or a rule match is not well formed."""


class RuleType(StrEnum):
    EXACT = "exact"
    CONTAINS = "contains"
    REGEX = "regex"
    KEYWORD_GROUP = "keyword_group"
    HEURISTIC = "heuristic"


class ActionType(StrEnum):
    KEEP = "keep"
    DELETE = "delete"
    REDACT = "redact"
    QUARANTINE = "quarantine"


class Confidence(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


def _blank(value: object) -> bool:
    return not isinstance(value, str) or not value.strip()


def _member(enum_cls: type[StrEnum], value: object) -> StrEnum | None:
    try:
        return enum_cls(value)
    except ValueError:
        return None


@dataclass(frozen=True, kw_only=True)
class Rule:
    """A single sanitization rule."""

    name: str = ""
    type: RuleType | str = ""
    pattern: str = ""
    keywords: tuple[str, ...] | list[str] = ()
    detector: str = ""
    action: ActionType | str = ""
    confidence: Confidence | str = ""
    reason: str = ""

    def validate(self) -> Rule:
        """Return the rule unchanged if it is valid; raise RuleError otherwise."""
        if _blank(self.name):
            raise RuleError("rule name is required")
        rule_type = _member(RuleType, self.type)
        if rule_type is None:
            raise RuleError(f"rule type {self.type!r} is invalid")
        if _member(ActionType, self.action) is None:
            raise RuleError(f"rule action {self.action!r} is invalid")
        if _member(Confidence, self.confidence) is None:
            raise RuleError(f"rule confidence {self.confidence!r} is invalid")
        if _blank(self.reason):
            raise RuleError("rule reason is required")

        match rule_type:
            case RuleType.EXACT | RuleType.CONTAINS:
                if _blank(self.pattern):
                    raise RuleError(f"rule pattern is required for type {rule_type.value!r}")
            case RuleType.REGEX:
                if _blank(self.pattern):
                    raise RuleError(f"rule pattern is required for type {rule_type.value!r}")
                try:
                    re.compile(self.pattern)
                except re.error as exc:
                    raise RuleError(
                        f"rule regex pattern {self.pattern!r} is invalid: {exc}"
                    ) from exc
            case RuleType.KEYWORD_GROUP:
                if not self.keywords:
                    raise RuleError(f"rule keywords are required for type {rule_type.value!r}")
                if any(_blank(keyword) for keyword in self.keywords):
                    raise RuleError("rule keywords must not contain empty values")
            case RuleType.HEURISTIC:
                if _blank(self.detector):
                    raise RuleError(f"rule detector is required for type {rule_type.value!r}")
        return self


@dataclass(frozen=True, kw_only=True)
class RuleMatch:
    """The outcome of one rule matching one command."""

    rule_name: str = ""
    reason: str = ""
    confidence: Confidence | str = ""
    action: ActionType | str = ""
    before: str = ""
    after: str = ""

    def validate(self) -> RuleMatch:
        """Return the match unchanged if it is valid; raise RuleError otherwise."""
        if _blank(self.rule_name):
            raise RuleError("rule match name is required")
        if _blank(self.reason):
            raise RuleError("rule match reason is required")
        if _member(Confidence, self.confidence) is None:
            raise RuleError(f"rule match confidence {self.confidence!r} is invalid")
        action = _member(ActionType, self.action)
        if action is None:
            raise RuleError(f"rule match action {self.action!r} is invalid")
        if _blank(self.before):
            raise RuleError("rule match before value is required")
        if action is ActionType.REDACT and _blank(self.after):
            raise RuleError(f"rule match after value is required for action {action.value!r}")
        return self


def validate_rules(rules: Iterable[Rule]) -> list[Rule]:
    """Validate every rule and reject duplicate names; return the rules as a list."""
    checked: list[Rule] = []
    seen: set[str] = set()
    for rule in rules:
        rule.validate()
        if rule.name in seen:
            raise RuleError(f"duplicate rule name {rule.name!r}")
        seen.add(rule.name)
        checked.append(rule)
    return checked


def builtin_secret_rules() -> list[Rule]:
    """Rules that catch secrets pasted into shell history."""
    return [
        Rule(
            name="private-key-block",
            type=RuleType.CONTAINS,
            pattern="BEGIN OPENSSH PRIVATE KEY",
            action=ActionType.QUARANTINE,
            confidence=Confidence.HIGH,
            reason="Quarantine pasted private key material",
        ),
        Rule(
            name="bearer-token",
            type=RuleType.REGEX,
            pattern=r"(?i)\bbearer\s+[A-Za-z0-9._\-+/=]{12,}",
            action=ActionType.REDACT,
            confidence=Confidence.HIGH,
            reason="Redact bearer tokens",
        ),
        Rule(
            name="inline-password-flag",
            type=RuleType.REGEX,
            pattern=r"(?i)(--password|--passwd)(=| )[^\s]+|\bpassword=[^\s]+|\s-p\s*[^\s]+",
            action=ActionType.REDACT,
            confidence=Confidence.HIGH,
            reason="Redact inline password values",
        ),
        Rule(
            name="url-embedded-credentials",
            type=RuleType.REGEX,
            pattern=r"(?i)\bhttps?://[^/\s:@]+:[^/\s@]+@[^/\s]+",
            action=ActionType.REDACT,
            confidence=Confidence.HIGH,
            reason="Redact URL-embedded credentials",
        ),
        Rule(
            name="aws-access-key-id",
            type=RuleType.REGEX,
            pattern=r"\b(AKIA|ASIA)[A-Z0-9]{16}\b",
            action=ActionType.REDACT,
            confidence=Confidence.HIGH,
            reason="Redact cloud access key identifiers",
        ),
        Rule(
            name="high-entropy-token",
            type=RuleType.HEURISTIC,
            detector="high_entropy_token",
            action=ActionType.QUARANTINE,
            confidence=Confidence.MEDIUM,
            reason="Quarantine likely secret-like high-entropy tokens",
        ),
    ]


def builtin_trivial_rules() -> list[Rule]:
    """Rules that drop low-value commands from shell history."""
    return [
        Rule(
            name="clear-command",
            type=RuleType.EXACT,
            pattern="clear",
            action=ActionType.DELETE,
            confidence=Confidence.HIGH,
            reason="Drop trivial terminal clear commands",
        ),
        Rule(
            name="pwd-command",
            type=RuleType.EXACT,
            pattern="pwd",
            action=ActionType.DELETE,
            confidence=Confidence.HIGH,
            reason="Drop trivial working-directory checks",
        ),
        Rule(
            name="ls-command",
            type=RuleType.EXACT,
            pattern="ls",
            action=ActionType.DELETE,
            confidence=Confidence.MEDIUM,
            reason="Drop trivial directory listings",
        ),
        Rule(
            name="ll-command",
            type=RuleType.EXACT,
            pattern="ll",
            action=ActionType.DELETE,
            confidence=Confidence.MEDIUM,
            reason="Drop trivial shell alias directory listings",
        ),
        Rule(
            name="large-paste-blob",
            type=RuleType.HEURISTIC,
            detector="large_paste_blob",
            action=ActionType.QUARANTINE,
            confidence=Confidence.MEDIUM,
            reason="Quarantine likely accidental large paste blobs",
        ),
    ]