"""
Vault — secret persistence on top of ContentCipher and a Storage backend.

Provides the business API used by the conversation layer:
- ``save_secret`` / ``save_long_text``: encrypt and persist a secret
- ``get_secret_detail``: fetch and decrypt a secret
- ``search_secrets`` / ``list_secrets`` / ``get_expiring_secrets``
- ``update_expiry`` / ``delete_secret``
- ``export_backup`` / ``get_expiry_reminder``
- ``get_session`` / ``set_session`` / ``clear_session``: per-user dialogue state

Security Note:
    Never log plaintext or ciphertext values. Only log secret ids, steps and
    user ids. Session payloads carry half-entered credentials, so they are
    encrypted with the content key as well.
"""
import logging
from typing import Optional
from datetime import date, datetime, timedelta, timezone

from .conf import RAW_SITE, SEARCH_LIMIT, EXPIRING_DAYS, REMINDER_DAYS, SESSION_TIMEOUT
from .crypto import ContentCipher
from .exceptions import CryptoError, NotFoundError, ValidationError
from .session import Idle, Session, dump_session, load_session
from .storage import Secret, SecretDetail, Storage
from .utils import ExpiryBand, clean_text, days_until, expiry_band

logger = logging.getLogger("mykeys.vault")

_REMINDER_SECTIONS = (
    (ExpiryBand.OVERDUE, "⚠️ Expired:"),
    (ExpiryBand.TODAY, "🔴 Today:"),
    (ExpiryBand.SOON, "🔴 Within 3 days:"),
    (ExpiryBand.WEEK, "🟡 Within 7 days:"),
)


class Vault:
    """Encrypted secret store plus the session proxy.

    Args:
        storage: Storage backend.
        cipher: Content cipher bound to the configured secret.
        session_timeout: Seconds after which a session reads back as idle.
    """

    def __init__(
        self,
        storage: Storage,
        cipher: ContentCipher,
        session_timeout: int = SESSION_TIMEOUT,
    ):
        self._storage = storage
        self._cipher = cipher
        self._session_timeout = timedelta(seconds=session_timeout)

    # ------------------------------------------------------------------
    # Secrets
    # ------------------------------------------------------------------

    async def save_secret(
        self,
        name: str,
        site: str,
        account: str,
        password: str,
        extra: Optional[str] = None,
        expires_at: Optional[str] = None,
    ) -> int:
        """Encrypt and persist a credential.

        Returns:
            The new secret id.

        Raises:
            ValidationError: If name, site, account or password is empty.
        """
        for field, value in (
            ("name", name), ("site", site),
            ("account", account), ("password", password),
        ):
            if not value or not value.strip():
                raise ValidationError(f"Missing {field}", f"❓ The {field} cannot be empty")
        secret = Secret(
            name=name.strip(),
            site=site.strip(),
            account=self._cipher.encrypt(account),
            password=self._cipher.encrypt(password),
            extra=self._cipher.encrypt(extra) if extra else None,
            expires_at=expires_at,
        )
        secret_id = await self._storage.insert_secret(secret)
        logger.info("Secret saved: id=%s", secret_id)
        return secret_id

    async def save_long_text(
        self, name: str, content: str, expires_at: Optional[str] = None,
    ) -> int:
        """Clean, encrypt and persist a long-text secret (keys, certificates).

        Raises:
            ValidationError: If name or cleaned content is empty.
        """
        cleaned = clean_text(content)
        if not name.strip() or not cleaned:
            raise ValidationError(
                "Missing name or content", "❓ Name and content cannot be empty"
            )
        secret = Secret(
            name=name.strip(),
            site=RAW_SITE,
            account='',
            password=self._cipher.encrypt(cleaned),
            extra=None,
            expires_at=expires_at,
        )
        secret_id = await self._storage.insert_secret(secret)
        logger.info("Long text saved: id=%s", secret_id)
        return secret_id

    async def get_secret(self, secret_id: int) -> Secret:
        """Return the stored (encrypted) row.

        Raises:
            NotFoundError: If the id is unknown.
        """
        secret = await self._storage.get_secret(secret_id)
        if secret is None:
            raise NotFoundError(secret_id)
        return secret

    def _decrypt(self, secret: Secret) -> SecretDetail:
        if secret.is_raw:
            return SecretDetail(
                id=secret.id,
                name=secret.name,
                site=secret.site,
                password=self._cipher.decrypt(secret.password),
                expires_at=secret.expires_at,
                is_raw=True,
            )
        return SecretDetail(
            id=secret.id,
            name=secret.name,
            site=secret.site,
            account=self._cipher.decrypt(secret.account),
            password=self._cipher.decrypt(secret.password),
            extra=self._cipher.decrypt(secret.extra) if secret.extra else None,
            expires_at=secret.expires_at,
            is_raw=False,
        )

    async def get_secret_detail(self, secret_id: int) -> SecretDetail:
        """Fetch and decrypt a secret.

        Raises:
            NotFoundError: If the id is unknown.
            CryptoError: If any field fails authentication.
        """
        secret = await self.get_secret(secret_id)
        try:
            return self._decrypt(secret)
        except CryptoError:
            logger.error("Secret id=%s could not be decrypted", secret_id)
            raise

    async def list_secrets(self) -> list[Secret]:
        return await self._storage.list_secrets()

    async def search_secrets(self, keyword: str, limit: int = SEARCH_LIMIT) -> list[Secret]:
        return await self._storage.search_secrets(keyword, limit)

    async def get_expiring_secrets(self, days: int = EXPIRING_DAYS) -> list[Secret]:
        return await self._storage.list_expiring_within(days)

    async def update_expiry(self, secret_id: int, expires_at: Optional[str]) -> None:
        await self.get_secret(secret_id)
        await self._storage.update_expiry(secret_id, expires_at)
        logger.info("Secret expiry updated: id=%s", secret_id)

    async def delete_secret(self, secret_id: int) -> Secret:
        """Delete a secret after checking it exists.

        Returns:
            The deleted row.

        Raises:
            NotFoundError: If the id is unknown.
        """
        secret = await self.get_secret(secret_id)
        await self._storage.delete_secret(secret_id)
        logger.info("Secret deleted: id=%s", secret_id)
        return secret

    async def export_backup(self) -> list[dict]:
        """Decrypted dump of every secret."""
        backup = []
        for secret in await self._storage.list_secrets():
            detail = self._decrypt(secret)
            if detail.is_raw:
                backup.append({
                    "id": detail.id,
                    "name": detail.name,
                    "type": RAW_SITE,
                    "content": detail.password,
                    "expires_at": detail.expires_at,
                })
            else:
                backup.append({
                    "id": detail.id,
                    "name": detail.name,
                    "site": detail.site,
                    "account": detail.account,
                    "password": detail.password,
                    "extra": detail.extra,
                    "expires_at": detail.expires_at,
                })
        logger.info("Backup exported: %d secret(s)", len(backup))
        return backup

    async def get_expiry_reminder(self, today: Optional[date] = None) -> Optional[str]:
        """Digest of secrets due within seven days, or None if there are none."""
        groups: dict[ExpiryBand, list[str]] = {band: [] for band, _ in _REMINDER_SECTIONS}
        for secret in await self._storage.list_expiring_within(REMINDER_DAYS):
            days = days_until(secret.expires_at, today)
            band = expiry_band(days)
            if band in groups:
                groups[band].append(f"• {secret.name}")
        sections = [
            f"{title}\n" + "\n".join(groups[band])
            for band, title in _REMINDER_SECTIONS
            if groups[band]
        ]
        if not sections:
            return None
        return "⏰ Expiry reminder\n\n" + "\n\n".join(sections)

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    async def get_session(self, user_id: str, now: Optional[datetime] = None) -> Session:
        """Return the user's session, or ``Idle`` when absent, expired or
        unreadable."""
        record = await self._storage.get_session(user_id)
        if record is None:
            return Idle()
        now = now or datetime.now(timezone.utc)
        updated_at = record.updated_at
        if updated_at.tzinfo is None:
            updated_at = updated_at.replace(tzinfo=timezone.utc)
        if now - updated_at > self._session_timeout:
            logger.debug("Session expired: user=%s", user_id)
            return Idle()
        try:
            return load_session(self._cipher.decrypt(record.payload))
        except (CryptoError, ValueError) as err:
            logger.warning(
                "Discarding unreadable session for user=%s: %s",
                user_id, type(err).__name__,
            )
            return Idle()

    async def set_session(self, user_id: str, session: Session) -> None:
        if isinstance(session, Idle):
            await self.clear_session(user_id)
            return
        payload = self._cipher.encrypt(dump_session(session))
        await self._storage.set_session(user_id, payload)
        logger.debug("Session stored: user=%s step=%s", user_id, session.step)

    async def clear_session(self, user_id: str) -> None:
        await self._storage.clear_session(user_id)
