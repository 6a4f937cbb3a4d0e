"""
Secret redaction for text before it is stored.

The store never redacts; the CLI and MCP surfaces run text through a
Redactor before calling add(). Results record which rule fired and how
often, never the matched text.
"""

import re
from dataclasses import dataclass, field
from typing import Protocol


@dataclass(frozen=True)
class RedactionMatch:
    rule: str
    count: int


@dataclass
class RedactionResult:
    redacted_text: str
    had_secrets: bool
    matches: list[RedactionMatch] = field(default_factory=list)


class Redactor(Protocol):
    def redact(self, text: str) -> RedactionResult: ...


@dataclass(frozen=True)
class _Rule:
    id: str
    pattern: re.Pattern
    replace_with: str


# Conservative patterns: common secret formats without over-matching
RULES = (
    _Rule("openai_api_key", re.compile(r"\bsk-[A-Za-z0-9]{20,}\b"), "[REDACTED:OPENAI_KEY]"),
    _Rule("github_pat", re.compile(r"\bgithub_pat_[A-Za-z0-9_]{20,}\b"), "[REDACTED:GITHUB_PAT]"),
    _Rule("github_token", re.compile(r"\bgh[pous]_[A-Za-z0-9]{30,}\b"), "[REDACTED:GITHUB_TOKEN]"),
    _Rule("google_api_key", re.compile(r"\bAIzaSy[A-Za-z0-9_-]{20,}\b"), "[REDACTED:GOOGLE_KEY]"),
    _Rule("aws_access_key", re.compile(r"\bAKIA[0-9A-Z]{16}\b"), "[REDACTED:AWS_ACCESS_KEY]"),
    _Rule(
        "aws_secret_key",
        re.compile(
            r"\baws_secret_access_key\b\s*[:=]\s*['\"]?[A-Za-z0-9/+=]{30,}['\"]?",
            re.IGNORECASE,
        ),
        "AWS_SECRET_ACCESS_KEY=[REDACTED]",
    ),
    _Rule(
        "private_key_block",
        re.compile(
            r"-----BEGIN ([A-Z ]+)PRIVATE KEY-----[\s\S]*?-----END \1PRIVATE KEY-----"
        ),
        "[REDACTED:PRIVATE_KEY_BLOCK]",
    ),
    _Rule("bearer_token", re.compile(r"\bBearer\s+[A-Za-z0-9\-._~+/]+=*"), "Bearer [REDACTED]"),
)


class DefaultRedactor:
    """Applies RULES in order; later rules see earlier replacements."""

    def redact(self, text: str) -> RedactionResult:
        out = text
        matches: list[RedactionMatch] = []
        for rule in RULES:
            # Literal replacement, no backreference expansion
            out, count = rule.pattern.subn(lambda _m, r=rule: r.replace_with, out)
            if count:
                matches.append(RedactionMatch(rule=rule.id, count=count))
        return RedactionResult(
            redacted_text=out,
            had_secrets=bool(matches),
            matches=matches,
        )
