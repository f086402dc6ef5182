"""
Chat command parsing.

``parse_text`` turns an inbound chat message into exactly one ``Command``;
``parse_event`` does the same for menu clicks. Parsing never touches the
session or storage.
"""
import re
from dataclasses import dataclass
from typing import Optional, Union

from ..utils import parse_date

HELP_WORDS = frozenset({"/help", "/start", "help", "帮助"})
LIST_WORDS = frozenset({"/list", "list", "列表"})
EXPIRING_WORDS = frozenset({"/expiring", "expiring", "到期"})
CANCEL_WORDS = frozenset({"/cancel", "cancel", "取消"})
SKIP_WORDS = frozenset({"no", "n", "skip", "none", "否", "不", "跳过", "无"})

LONG_TEXT_MARKERS = ("#存", "#save")

MENU_KEYS = {
    "CMD_LIST": "list",
    "CMD_ADD": "add",
    "CMD_EXPIRING": "expiring",
    "CMD_HELP": "help",
}

_ADD_RE = re.compile(r"^(?:/add|添加)(?:\s+(.+))?$", re.IGNORECASE | re.DOTALL)
_DELETE_RE = re.compile(r"^(?:/del|/delete|删除)\s+(\d+)$", re.IGNORECASE)
_NAME_DATE_RE = re.compile(r"@([\d\-/]+)$")


@dataclass(frozen=True)
class Help:
    pass


@dataclass(frozen=True)
class ListAll:
    pass


@dataclass(frozen=True)
class Expiring:
    pass


@dataclass(frozen=True)
class Cancel:
    pass


@dataclass(frozen=True)
class AddBare:
    pass


@dataclass(frozen=True)
class AddNamed:
    name: str


@dataclass(frozen=True)
class Delete:
    secret_id: int


@dataclass(frozen=True)
class SaveLongText:
    name: str
    body: str
    expires_at: Optional[str] = None


@dataclass(frozen=True)
class LongTextUsage:
    """Long-text marker without a body line."""


@dataclass(frozen=True)
class StepInput:
    text: str


Command = Union[
    Help, ListAll, Expiring, Cancel, AddBare, AddNamed, Delete,
    SaveLongText, LongTextUsage, StepInput,
]


def is_skip(text: str) -> bool:
    return text.strip().lower() in SKIP_WORDS


def _parse_long_text(text: str, marker: str) -> Command:
    newline = text.find("\n")
    if newline == -1:
        return LongTextUsage()
    name = text[len(marker):newline].strip()
    expires_at = None
    m = _NAME_DATE_RE.search(name)
    if m:
        expires_at = parse_date(m.group(1))
        name = name[:m.start()].strip()
    return SaveLongText(name=name, body=text[newline + 1:], expires_at=expires_at)


def parse_text(text: str) -> Command:
    """Classify a chat message.

    Keywords win over any dialogue in progress; anything unrecognised is a
    ``StepInput`` that the engine routes by session state.
    """
    stripped = text.strip()
    word = stripped.lower()
    if word in HELP_WORDS:
        return Help()
    if word in LIST_WORDS:
        return ListAll()
    if word in EXPIRING_WORDS:
        return Expiring()
    if word in CANCEL_WORDS:
        return Cancel()

    m = _ADD_RE.match(stripped)
    if m:
        name = (m.group(1) or "").strip()
        return AddNamed(name) if name else AddBare()

    m = _DELETE_RE.match(stripped)
    if m:
        return Delete(int(m.group(1)))

    for marker in LONG_TEXT_MARKERS:
        if stripped.lower().startswith(marker):
            return _parse_long_text(stripped, marker)

    return StepInput(stripped)


def parse_event(event: Optional[str], event_key: Optional[str]) -> Optional[Command]:
    """Map a menu click to its command; other events yield None."""
    if (event or "").lower() != "click":
        return None
    action = MENU_KEYS.get(event_key or "")
    if action == "list":
        return ListAll()
    if action == "add":
        return AddBare()
    if action == "expiring":
        return Expiring()
    if action == "help":
        return Help()
    return None
