"""
Command string tokenizer.

Splits a combined command line such as ``git commit -m 'Initial commit'``
into a program name and its arguments. Only quoting and backslash escapes
are understood; pipes, redirection and globbing are passed through as
ordinary characters.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto


class _State(Enum):
    BARE = auto()
    SINGLE = auto()  # inside '...', backslash is literal
    DOUBLE = auto()  # inside "...", backslash escapes the next character
    ESCAPED = auto()


@dataclass(frozen=True, slots=True)
class ParsedCommand:
    command: str
    args: list[str] = field(default_factory=list)


def parse_command_string(command_string: str) -> ParsedCommand:
    """
    Tokenize a command line.

    Whitespace outside quotes separates tokens. An unterminated quote runs to
    the end of the string, a trailing lone backslash is dropped and empty
    tokens (such as ``''``) are not emitted.

    Args:
        command_string: The command line to split.

    Returns:
        ParsedCommand whose ``command`` is empty when no token was found.
    """
    tokens: list[str] = []
    current: list[str] = []
    state = _State.BARE
    resume = _State.BARE  # state to return to after an escaped character

    for char in command_string:
        if state is _State.ESCAPED:
            current.append(char)
            state = resume
        elif state is _State.SINGLE:
            if char == "'":
                state = _State.BARE
            else:
                current.append(char)
        elif state is _State.DOUBLE:
            if char == "\\":
                resume, state = _State.DOUBLE, _State.ESCAPED
            elif char == '"':
                state = _State.BARE
            else:
                current.append(char)
        elif char == "\\":
            resume, state = _State.BARE, _State.ESCAPED
        elif char == "'":
            state = _State.SINGLE
        elif char == '"':
            state = _State.DOUBLE
        elif char.isspace():
            if current:
                tokens.append("".join(current))
                current = []
        else:
            current.append(char)

    if current:
        tokens.append("".join(current))

    return ParsedCommand(command=tokens[0] if tokens else "", args=tokens[1:])


def needs_tokenizing(command: str, args: list[str] | tuple[str, ...]) -> bool:
    """True when ``command`` is a combined command line rather than a program name."""
    return not args and any(char.isspace() for char in command)


def build_command_line(command: str, args: list[str] | tuple[str, ...]) -> str:
    """Join program and arguments for the host shell."""
    if not args:
        return command
    return f"{command} {' '.join(args)}"


def format_args_for_log(args: list[str] | tuple[str, ...]) -> str:
    return ", ".join(f'"{arg}"' for arg in args)
