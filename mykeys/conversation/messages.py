"""Reply texts sent back to the chat user."""
from typing import Optional

from ..storage import Secret, SecretDetail
from ..utils import BAND_ICONS, ExpiryBand, days_until, expiry_band, expiry_info

HELP_TEXT = """🔐 MyKeys password assistant

📝 Save: /add or /add <name>
📄 Long text: #save <name>[@date]
<content>
🔍 Search: send a keyword
📋 List: /list
⏰ Expiring: /expiring
🗑️ Delete: /del <id>
❌ Cancel: /cancel

🔒 AES encrypted ⏰ expiry reminders"""

ASK_NAME = "📝 New entry\n\n🏷️ Enter a name:"
ASK_ACCOUNT = "👤 Enter the account:"
ASK_PASSWORD = "🔑 Enter the password:"
ASK_EXPIRY = '📅 Set an expiry date?\n\nReply with a date (e.g. 2025-12-31) or "no" to skip'
ASK_EXTRA = '📝 Add a note?\n\nReply with the note or "no" to skip'
BAD_DATE = "❓ Invalid date, use e.g. 2025-12-31 or 12-31"
CANCELLED = "✅ Cancelled"
EMPTY = "📭 Nothing saved yet"
NO_EXPIRING = "✅ Nothing expires within 30 days"
NOT_FOUND = "❌ Does not exist"
UNREADABLE = "❌ This record cannot be decrypted"
LONG_TEXT_USAGE = "❓ Format: #save <name>\n<content>"
LONG_TEXT_EMPTY = "❓ Name and content cannot be empty"


def ask_site(name: str) -> str:
    return f"📝 Saving「{name}」\n\n🌐 Enter the site:"


def not_found(keyword: str) -> str:
    return f"🔍 Nothing matches「{keyword}」\n\nSend /add {keyword} to save it"


def _suffix(value: Optional[str], icon: str) -> str:
    return f"\n{icon} {value}" if value else ""


def saved(name: str, site: str, account: str,
          extra: Optional[str], expires_at: Optional[str]) -> str:
    return (
        f"✅ Saved!\n\n🏷️ {name}\n🌐 {site}\n👤 {account}\n🔑 ******"
        f"{_suffix(extra, '📝')}{_suffix(expires_at, '📅')}"
    )


def saved_long_text(name: str, expires_at: Optional[str]) -> str:
    return f"✅ Saved「{name}」{_suffix(expires_at, '📅')}"


def deleted(secret: Secret) -> str:
    return f"🗑️ Deleted「{secret.name}」(#{secret.id})"


def detail(item: SecretDetail) -> str:
    status = expiry_info(item.expires_at)
    status = f"\n{status}" if status else ""
    if item.is_raw:
        return f"🔐 {item.name}\n\n{item.password}{status}"
    return (
        f"🔐 {item.name}\n🌐 {item.site}\n👤 {item.account}\n🔑 {item.password}"
        f"{_suffix(item.extra, '📝')}{status}"
    )


def _list_line(index: int, secret: Secret) -> str:
    prefix = ""
    if secret.expires_at:
        band = expiry_band(days_until(secret.expires_at))
        if band in (ExpiryBand.OVERDUE, ExpiryBand.TODAY,
                    ExpiryBand.SOON, ExpiryBand.WEEK):
            prefix = f"{BAND_ICONS[band]} "
    return f"{index}. {prefix}{secret.name} ({secret.site})"


def listing(secrets: list[Secret]) -> str:
    lines = "\n".join(_list_line(i, s) for i, s in enumerate(secrets, 1))
    return f"📋 {len(secrets)} entries:\n\n{lines}\n\nReply with a number to view"


def search_results(secrets: list[Secret]) -> str:
    lines = "\n".join(f"{i}. {s.name} ({s.site})" for i, s in enumerate(secrets, 1))
    return f"🔍 Found {len(secrets)}:\n\n{lines}\n\nReply with a number to view"


def expiring(secrets: list[Secret]) -> str:
    lines = []
    for secret in secrets:
        days = days_until(secret.expires_at)
        icon = BAND_ICONS[expiry_band(days)]
        lines.append(f"{icon} {secret.name} ({days} days)")
    return "⏰ Expiring soon:\n\n" + "\n".join(lines)
