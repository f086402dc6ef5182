"""
ConversationEngine — per-user dialogue state machine.

Commands parsed from chat text are applied against the user's session:
keywords run regardless of state, anything else is routed by the current
step (guided creation, picking from a list) or treated as a search.
"""
import logging
from typing import Optional

from ..exceptions import CryptoError, NotFoundError, ValidationError
from ..service import Vault
from ..session import (
    AskAccount,
    AskExpiry,
    AskExtra,
    AskName,
    AskPassword,
    AskSite,
    Idle,
    Picking,
    Session,
)
from ..utils import parse_date
from . import messages
from .commands import (
    AddBare,
    AddNamed,
    Cancel,
    Command,
    Delete,
    Expiring,
    Help,
    ListAll,
    LongTextUsage,
    SaveLongText,
    StepInput,
    is_skip,
    parse_event,
    parse_text,
)

logger = logging.getLogger("mykeys.conversation")


class ConversationEngine:
    """Turn chat input into replies, persisting dialogue state via the Vault.

    Args:
        vault: Vault used for every data and session operation.
    """

    def __init__(self, vault: Vault):
        self._vault = vault
        self._handlers = {
            Help: self._help,
            ListAll: self._list,
            Expiring: self._expiring,
            Cancel: self._cancel,
            AddBare: self._add_bare,
            AddNamed: self._add_named,
            Delete: self._delete,
            SaveLongText: self._save_long_text,
            LongTextUsage: self._long_text_usage,
            StepInput: self._step_input,
        }

    async def handle(self, user_id: str, text: str) -> Optional[str]:
        """Reply to a text message, or None when there is nothing to say."""
        if not text or not text.strip():
            return None
        return await self.dispatch(user_id, parse_text(text))

    async def handle_event(
        self, user_id: str, event: Optional[str], event_key: Optional[str],
    ) -> Optional[str]:
        """Reply to a menu click; other events are ignored."""
        command = parse_event(event, event_key)
        if command is None:
            return None
        return await self.dispatch(user_id, command)

    async def dispatch(self, user_id: str, command: Command) -> Optional[str]:
        logger.debug("Dispatch %s for user=%s", type(command).__name__, user_id)
        handler = self._handlers[type(command)]
        try:
            return await handler(user_id, command)
        except ValidationError as err:
            return err.prompt
        except NotFoundError:
            return messages.NOT_FOUND
        except CryptoError:
            return messages.UNREADABLE

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def _help(self, user_id: str, command: Help) -> str:
        return messages.HELP_TEXT

    async def _list(self, user_id: str, command: ListAll) -> str:
        secrets = await self._vault.list_secrets()
        if not secrets:
            return messages.EMPTY
        session = await self._vault.get_session(user_id)
        # only offer picking when no creation dialogue would be lost
        if isinstance(session, (Idle, Picking)):
            await self._vault.set_session(
                user_id, Picking(picking_ids=[s.id for s in secrets])
            )
        return messages.listing(secrets)

    async def _expiring(self, user_id: str, command: Expiring) -> str:
        secrets = await self._vault.get_expiring_secrets()
        if not secrets:
            return messages.NO_EXPIRING
        return messages.expiring(secrets)

    async def _cancel(self, user_id: str, command: Cancel) -> str:
        await self._vault.clear_session(user_id)
        return messages.CANCELLED

    async def _add_bare(self, user_id: str, command: AddBare) -> str:
        await self._vault.set_session(user_id, AskName())
        return messages.ASK_NAME

    async def _add_named(self, user_id: str, command: AddNamed) -> str:
        await self._vault.set_session(user_id, AskSite(name=command.name))
        return messages.ask_site(command.name)

    async def _delete(self, user_id: str, command: Delete) -> str:
        secret = await self._vault.delete_secret(command.secret_id)
        return messages.deleted(secret)

    async def _save_long_text(self, user_id: str, command: SaveLongText) -> str:
        if not command.name or not command.body.strip():
            return messages.LONG_TEXT_EMPTY
        await self._vault.save_long_text(
            command.name, command.body, command.expires_at
        )
        return messages.saved_long_text(command.name, command.expires_at)

    async def _long_text_usage(self, user_id: str, command: LongTextUsage) -> str:
        return messages.LONG_TEXT_USAGE

    async def _step_input(self, user_id: str, command: StepInput) -> str:
        session = await self._vault.get_session(user_id)
        text = command.text
        if isinstance(session, Idle):
            return await self._search(user_id, text)
        if isinstance(session, Picking):
            return await self._pick(user_id, session, text)
        return await self._advance(user_id, session, text)

    # ------------------------------------------------------------------
    # Guided creation
    # ------------------------------------------------------------------

    async def _advance(self, user_id: str, session: Session, text: str) -> str:
        if isinstance(session, AskExtra):
            return await self.finish_save(
                user_id, session, None if is_skip(text) else text
            )
        if isinstance(session, AskExpiry):
            expires_at = None
            if not is_skip(text):
                expires_at = parse_date(text)
                if expires_at is None:
                    raise ValidationError("Invalid expiry date", messages.BAD_DATE)
            next_session = session.answer(expires_at)
        else:
            next_session = session.answer(text)
        await self._vault.set_session(user_id, next_session)
        return self._prompt(next_session)

    @staticmethod
    def _prompt(session: Session) -> str:
        if isinstance(session, AskSite):
            return messages.ask_site(session.name)
        if isinstance(session, AskAccount):
            return messages.ASK_ACCOUNT
        if isinstance(session, AskPassword):
            return messages.ASK_PASSWORD
        if isinstance(session, AskExpiry):
            return messages.ASK_EXPIRY
        return messages.ASK_EXTRA

    async def finish_save(
        self, user_id: str, session: AskExtra, extra: Optional[str],
    ) -> str:
        """Persist the collected secret and return to idle."""
        await self._vault.save_secret(
            name=session.name,
            site=session.site,
            account=session.account,
            password=session.password,
            extra=extra,
            expires_at=session.expires_at,
        )
        await self._vault.clear_session(user_id)
        return messages.saved(
            session.name, session.site, session.account, extra, session.expires_at
        )

    # ------------------------------------------------------------------
    # Search & picking
    # ------------------------------------------------------------------

    async def _search(self, user_id: str, keyword: str) -> str:
        results = await self._vault.search_secrets(keyword)
        if not results:
            return messages.not_found(keyword)
        if len(results) == 1:
            return await self._show(results[0].id)
        await self._vault.set_session(
            user_id, Picking(picking_ids=[s.id for s in results])
        )
        return messages.search_results(results)

    async def _pick(self, user_id: str, session: Picking, text: str) -> str:
        await self._vault.clear_session(user_id)
        if text.isdecimal():
            index = int(text)
            if 1 <= index <= len(session.picking_ids):
                return await self._show(session.picking_ids[index - 1])
        return await self._search(user_id, text)

    async def _show(self, secret_id: int) -> str:
        detail = await self._vault.get_secret_detail(secret_id)
        return messages.detail(detail)
