"""
MyKeys web application.

Wires storage, the Vault, the conversation engine and the WeCom adapter into
an aiohttp application, and optionally pushes a periodic expiry digest.
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

import aiohttp
import asyncpg
import orjson
from aiohttp import web

from .conf import AppConfig
from .conversation import ConversationEngine
from .crypto import ContentCipher, KeyCache
from .service import Vault
from .storage import MemoryStorage, PostgresStorage, Storage
from .wecom import TokenCache, WeComClient, WeComCrypto, WeComHandler
from .wecom.menu import sync_menu

logger = logging.getLogger("mykeys.app")

CONFIG_KEY = web.AppKey("config", AppConfig)
VAULT_KEY = web.AppKey("vault", Vault)
STORAGE_KEY = web.AppKey("storage", Storage)
CLIENT_KEY = web.AppKey("wecom_client", WeComClient)


def _dumps(obj) -> str:
    return orjson.dumps(obj).decode("utf-8")


async def health(request: web.Request) -> web.Response:
    return web.json_response(
        {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()},
        dumps=_dumps,
    )


async def send_expiry_reminder(vault: Vault, client: WeComClient, user_id: str) -> bool:
    """Push the expiry digest to ``user_id``.

    Returns:
        True if a digest was sent, False when nothing is due.
    """
    digest = await vault.get_expiry_reminder()
    if digest is None:
        return False
    await client.send_text(user_id, digest)
    logger.info("Expiry reminder sent to user=%s", user_id)
    return True


async def _reminder_loop(vault: Vault, client: WeComClient, user_id: str, interval: int) -> None:
    while True:
        await asyncio.sleep(interval)
        try:
            await send_expiry_reminder(vault, client, user_id)
        except Exception:
            logger.exception("Expiry reminder failed")


async def _reminder_ctx(app: web.Application):
    config = app[CONFIG_KEY]
    task = None
    if config.reminders_enabled:
        task = asyncio.create_task(
            _reminder_loop(
                app[VAULT_KEY], app[CLIENT_KEY],
                config.remind_user, config.remind_interval,
            )
        )
        logger.info("Expiry reminders every %ds", config.remind_interval)
    yield
    if task is not None:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass


async def _open_storage(config: AppConfig) -> Storage:
    if config.database_url:
        pool = await asyncpg.create_pool(dsn=config.database_url)
        return PostgresStorage(pool)
    return MemoryStorage()


async def create_app(
    config: AppConfig,
    storage: Optional[Storage] = None,
    client_session: Optional[aiohttp.ClientSession] = None,
) -> web.Application:
    """Build the application.

    Args:
        config: Validated configuration.
        storage: Storage backend; opened from ``config`` when omitted.
        client_session: HTTP session for the WeCom API; created (and
            closed on shutdown) when omitted.
    """
    storage = storage or await _open_storage(config)
    await storage.init()
    vault = Vault(
        storage,
        ContentCipher(config.encrypt_key, KeyCache()),
        session_timeout=config.session_timeout,
    )

    app = web.Application()
    app[CONFIG_KEY] = config
    app[STORAGE_KEY] = storage
    app[VAULT_KEY] = vault
    app.router.add_get("/health", health)

    async def _close_storage(app: web.Application) -> None:
        await storage.close()

    app.on_cleanup.append(_close_storage)

    if config.wecom is None:
        logger.warning("WeCom not configured, only /health is served")
        return app

    wecom = config.wecom
    handler = WeComHandler(
        WeComCrypto(wecom.token, wecom.encoding_aes_key, wecom.corp_id),
        ConversationEngine(vault),
    )
    handler.setup(app)
    logger.info("WeCom callback configured: /wecom/callback")

    owns_session = client_session is None
    client_session = client_session or aiohttp.ClientSession()
    client = WeComClient(
        wecom.corp_id, wecom.secret, wecom.agent_id,
        client_session, TokenCache(),
    )
    app[CLIENT_KEY] = client

    if owns_session:
        async def _close_session(app: web.Application) -> None:
            await client_session.close()

        app.on_cleanup.append(_close_session)

    if config.sync_menu:
        try:
            await sync_menu(client)
        except Exception:
            logger.exception("WeCom menu sync failed")

    app.cleanup_ctx.append(_reminder_ctx)
    return app


def main() -> None:
    config = AppConfig.from_env()
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Starting MyKeys on %s:%s", config.host, config.port)
    web.run_app(create_app(config), host=config.host, port=config.port)


if __name__ == "__main__":
    main()
