"""Text and date helpers shared by the vault and the conversation layer."""
import re
import calendar
from enum import Enum
from datetime import date
from typing import Optional

_DATE_RE = re.compile(r"^(?:(\d{4})[-/])?(\d{1,2})[-/](\d{1,2})$")

_FULL_WIDTH = "０１２３４５６７８９＋－＝／＼（）［］｛｝＜＞｜＆＊＠＄％＾＿｀～：；＂＇，．？！　"
_HALF_WIDTH = "0123456789+-=/\\()[]{}<>|&*@$%^_`~:;\"',.?! "
_WIDTH_TABLE = str.maketrans(_FULL_WIDTH, _HALF_WIDTH)

_FENCE_OPEN_RE = re.compile(r"^```\w*\n?", re.MULTILINE)
_FENCE_CLOSE_RE = re.compile(r"\n?```$", re.MULTILINE)
_LEADING_SYMBOLS_RE = re.compile(
    r"^(?:[\U0001F300-\U0001F9FF\u2600-\u27BF\uFE0F]+[^\S\n]*)+", re.MULTILINE
)
_ZERO_WIDTH_RE = re.compile(r"[\u200B-\u200D\uFEFF]")
_BLANK_RUN_RE = re.compile(r"\n{3,}")


def _clean_once(text: str) -> str:
    r = text.replace("\r\n", "\n").replace("\r", "\n")
    r = _FENCE_OPEN_RE.sub("", r)
    r = _FENCE_CLOSE_RE.sub("", r)
    r = _LEADING_SYMBOLS_RE.sub("", r)
    r = r.translate(_WIDTH_TABLE)
    r = _ZERO_WIDTH_RE.sub("", r)
    r = _BLANK_RUN_RE.sub("\n\n", r)
    return r.strip()


def clean_text(text: str) -> str:
    """Normalize a pasted long-text secret.

    Strips code fences, leading emoji on every line, zero-width characters,
    converts full-width punctuation and digits to ASCII and collapses runs of
    blank lines. Passes repeat until nothing changes, so the result is
    stable under re-cleaning.
    """
    current = text
    while True:
        cleaned = _clean_once(current)
        if cleaned == current:
            return cleaned
        current = cleaned


def _month_day(year: int, month: int, day: int) -> date:
    # yearless 02-29 falls back to 02-28 in common years
    if month == 2 and day == 29 and not calendar.isleap(year):
        day = 28
    return date(year, month, day)


def parse_date(text: str, today: Optional[date] = None) -> Optional[str]:
    """Parse ``YYYY-MM-DD``, ``YYYY/MM/DD``, ``MM-DD`` or ``MM/DD``.

    Without a year the current year is assumed, rolling forward one year if
    that date has already passed. A yearless ``02-29`` resolves to
    ``02-28`` in a year that is not a leap year.

    Returns:
        ``YYYY-MM-DD`` or None when the text is not a valid date.
    """
    m = _DATE_RE.match(text.strip())
    if not m:
        return None
    month, day = int(m.group(2)), int(m.group(3))
    try:
        if m.group(1):
            return date(int(m.group(1)), month, day).isoformat()
        today = today or date.today()
        result = _month_day(today.year, month, day)
        if result < today:
            result = _month_day(today.year + 1, month, day)
    except ValueError:
        return None
    return result.isoformat()


def days_until(value: str, today: Optional[date] = None) -> int:
    """Calendar days from today until ``value`` (negative when overdue)."""
    today = today or date.today()
    return (date.fromisoformat(value) - today).days


class ExpiryBand(str, Enum):
    OVERDUE = "overdue"
    TODAY = "today"
    SOON = "soon"     # 1-3 days
    WEEK = "week"     # 4-7 days
    MONTH = "month"   # 8-30 days
    FAR = "far"


BAND_ICONS = {
    ExpiryBand.OVERDUE: "⚠️",
    ExpiryBand.TODAY: "🔴",
    ExpiryBand.SOON: "🔴",
    ExpiryBand.WEEK: "🟡",
    ExpiryBand.MONTH: "🟢",
    ExpiryBand.FAR: "📅",
}


def expiry_band(days: int) -> ExpiryBand:
    if days < 0:
        return ExpiryBand.OVERDUE
    if days == 0:
        return ExpiryBand.TODAY
    if days <= 3:
        return ExpiryBand.SOON
    if days <= 7:
        return ExpiryBand.WEEK
    if days <= 30:
        return ExpiryBand.MONTH
    return ExpiryBand.FAR


def expiry_info(value: Optional[str], today: Optional[date] = None) -> str:
    """One-line expiry status used by detail views, or "" without a date."""
    if not value:
        return ""
    days = days_until(value, today)
    band = expiry_band(days)
    icon = BAND_ICONS[band]
    if band is ExpiryBand.OVERDUE:
        return f"{icon} Expired {-days} day(s) ago"
    if band is ExpiryBand.TODAY:
        return f"{icon} Expires today!"
    if band is ExpiryBand.FAR:
        return f"{icon} {value}"
    return f"{icon} Expires in {days} day(s)"
