"""
Command vocabulary of the ISC board and the line parser.

Parsing never raises: anything that is not a known `$` command comes back as
an UnrecognizedCommand value so the caller can answer it like any other line.
"""

from __future__ import annotations
import enum
import re
from dataclasses import dataclass
from typing import Optional, Tuple, Union


class Direction(str, enum.Enum):
    GET = "get"
    SET = "set"
    ACTION = "action"


class CommandKind(enum.Enum):
    """Known command tokens and whether they read, write or act."""

    GET_FREQUENCY = ("$FCG", Direction.GET)
    SET_FREQUENCY = ("$FCS", Direction.SET)
    SET_RF_OUTPUT = ("$ECS", Direction.SET)
    GET_RF_OUTPUT = ("$ECG", Direction.GET)
    GET_PHASE = ("$PCG", Direction.GET)
    SET_PHASE = ("$PCS", Direction.SET)
    GET_IDENTITY = ("$IDN", Direction.GET)
    GET_TEMPERATURE = ("$TCG", Direction.GET)
    GET_UPTIME = ("$RTG", Direction.GET)
    GET_STATUS = ("$ST", Direction.GET)
    RESET_SYSTEM = ("$RST", Direction.ACTION)
    CLEAR_ERRORS = ("$ERRC", Direction.ACTION)

    def __init__(self, token: str, direction: Direction) -> None:
        self.token = token
        self.direction = direction

    @classmethod
    def from_token(cls, token: str) -> Optional["CommandKind"]:
        return _BY_TOKEN.get(token.upper())


_BY_TOKEN = {kind.token: kind for kind in CommandKind}

# `$` + letters, then whatever follows (delimited or glued on, e.g. `$ECS1`).
_LINE_RE = re.compile(r"^\s*(\$[A-Za-z]+)(.*)$")
_ARG_SPLIT_RE = re.compile(r"[,\s]+")


@dataclass(frozen=True)
class ParsedCommand:
    kind: CommandKind
    args: Tuple[str, ...] = ()

    @property
    def token(self) -> str:
        return self.kind.token

    @property
    def recognized(self) -> bool:
        return True


@dataclass(frozen=True)
class UnrecognizedCommand:
    """A line that is not part of the vocabulary. `token` may be empty."""

    raw: str
    token: str
    reason: str

    @property
    def recognized(self) -> bool:
        return False


ParseResult = Union[ParsedCommand, UnrecognizedCommand]


def split_args(rest: str) -> Tuple[str, ...]:
    """Split the text after the token on commas/whitespace, dropping blanks."""
    return tuple(a for a in _ARG_SPLIT_RE.split(rest.strip()) if a)


def parse_line(line: str) -> ParseResult:
    text = line.strip()
    if not text:
        return UnrecognizedCommand(raw=line, token="", reason="empty line")

    match = _LINE_RE.match(text)
    if match is None:
        return UnrecognizedCommand(raw=line, token="", reason="missing '$' token")

    token, rest = match.group(1).upper(), match.group(2)
    kind = CommandKind.from_token(token)
    if kind is None:
        return UnrecognizedCommand(raw=line, token=token, reason="unknown command")
    return ParsedCommand(kind=kind, args=split_args(rest))
