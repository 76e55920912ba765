"""Command-line tokenizer and declarative flag grammar.

Each handler owns its grammar: it declares a tuple of `Flag`s and calls
`parse_flags` on the tokens after its verb. Nothing is validated globally.
"""

from __future__ import annotations

import logging
import re
import shlex
from dataclasses import dataclass, field
from typing import Any, Literal

from .errors import CommandError

logger = logging.getLogger(__name__)

_COUNT_FLAG = re.compile(r"^-(\d+)$")
_RELATIVE_REV = re.compile(r"^(?:HEAD|@)(?:~(\d*)|(\^+))?$")


def tokenize(line: str) -> list[str]:
    """Split a line honouring quotes; unbalanced quotes fall back to whitespace."""
    try:
        return shlex.split(line)
    except ValueError as e:
        logger.debug(f"shlex could not split {line!r} ({e}); using whitespace split")
        return line.split()


@dataclass(frozen=True)
class ParsedCommand:
    """A command line split into its verb and the tokens after it."""

    program: Literal["git", "shell"]
    verb: str
    args: list[str]
    raw: str   # whole trimmed line
    rest: str  # untokenized text after the verb


def parse_command(line: str) -> ParsedCommand | None:
    """Return the parsed command, or None for a blank line."""
    raw = line.strip()
    if not raw:
        return None
    tokens = tokenize(raw) or raw.split()

    if tokens[0] == "git":
        if len(tokens) == 1 or tokens[1] in ("--help", "-h"):
            return ParsedCommand("git", "help", tokens[2:], raw, "")
        parts = raw.split(None, 2)
        return ParsedCommand("git", tokens[1], tokens[2:], raw, parts[2] if len(parts) > 2 else "")

    parts = raw.split(None, 1)
    return ParsedCommand("shell", tokens[0], tokens[1:], raw, parts[1] if len(parts) > 1 else "")


# ─────────────────────────────────────────────────────────────────────────────
# Flag grammar
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Flag:
    """One option: a destination name plus every spelling that sets it."""

    dest: str
    names: tuple[str, ...]
    takes_value: bool = False


@dataclass
class ParsedFlags:
    values: dict[str, Any] = field(default_factory=dict)
    positionals: list[str] = field(default_factory=list)
    unknown: list[str] = field(default_factory=list)

    def has(self, dest: str) -> bool:
        return dest in self.values

    def get(self, dest: str, default: Any = None) -> Any:
        return self.values.get(dest, default)


def _lookup(flags: tuple[Flag, ...], name: str) -> Flag | None:
    for flag in flags:
        if name in flag.names:
            return flag
    return None


def parse_flags(
    args: list[str],
    flags: tuple[Flag, ...],
    count_dest: str | None = None,
) -> ParsedFlags:
    """Parse tokens against a flag spec.

    Args:
        args: Tokens after the verb (and sub-verb, if any)
        flags: The handler's accepted options
        count_dest: If set, `-N` stores int(N) under this name

    Returns:
        ParsedFlags with values keyed by `Flag.dest`. Boolean flags store
        True; value flags store the last value given.

    Raises:
        CommandError: If a value flag is last with no value after it
    """
    parsed = ParsedFlags()
    i = 0
    while i < len(args):
        token = args[i]
        i += 1

        if token == "--":
            parsed.positionals.extend(args[i:])
            break

        if count_dest and (m := _COUNT_FLAG.match(token)):
            parsed.values[count_dest] = int(m.group(1))
            continue

        if token.startswith("--"):
            name, eq, inline = token.partition("=")
            flag = _lookup(flags, name)
            if flag is None:
                parsed.unknown.append(token)
            elif not flag.takes_value:
                parsed.values[flag.dest] = True
            elif eq:
                parsed.values[flag.dest] = inline
            elif i < len(args):
                parsed.values[flag.dest] = args[i]
                i += 1
            else:
                raise CommandError(f"error: option `{name[2:]}' requires a value")
            continue

        if token.startswith("-") and len(token) > 1:
            flag = _lookup(flags, token)
            if flag is not None:
                if not flag.takes_value:
                    parsed.values[flag.dest] = True
                elif i < len(args):
                    parsed.values[flag.dest] = args[i]
                    i += 1
                else:
                    raise CommandError(f"error: switch `{token[1:]}' requires a value")
                continue
            i = _parse_bundle(token, args, i, flags, parsed)
            continue

        parsed.positionals.append(token)

    return parsed


def _parse_bundle(token: str, args: list[str], i: int, flags: tuple[Flag, ...], parsed: ParsedFlags) -> int:
    """Expand `-am msg` / `-mmsg` style short-flag bundles; returns next index."""
    pending: dict[str, Any] = {}
    chars = token[1:]
    for pos, ch in enumerate(chars):
        flag = _lookup(flags, f"-{ch}")
        if flag is None:
            parsed.unknown.append(token)
            return i
        if not flag.takes_value:
            pending[flag.dest] = True
            continue
        remainder = chars[pos + 1:]
        if remainder:
            pending[flag.dest] = remainder
        elif i < len(args):
            pending[flag.dest] = args[i]
            i += 1
        else:
            raise CommandError(f"error: switch `{ch}' requires a value")
        break
    parsed.values.update(pending)
    return i


def parse_revision(ref: str) -> int | None:
    """Return how many commits back a HEAD-relative ref points, else None.

    `HEAD` and `@` are 0, `HEAD~3` is 3, `HEAD~` and `HEAD^` are 1,
    `HEAD^^` is 2.
    """
    m = _RELATIVE_REV.match(ref)
    if m is None:
        return None
    tilde, carets = m.group(1), m.group(2)
    if carets:
        return len(carets)
    if tilde is None:
        return 0
    return int(tilde) if tilde else 1
