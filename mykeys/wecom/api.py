"""
WeCom REST client — access token, message sending and menu management.

Security Note:
    Never log the corp secret or access tokens.
"""
import time
import logging
from typing import Any, Optional

import aiohttp
import orjson

from ..conf import TOKEN_REFRESH_MARGIN, WECOM_API_BASE
from ..exceptions import WeComAPIError

logger = logging.getLogger("mykeys.wecom")

# errcodes meaning the access token is invalid or expired
_TOKEN_ERRCODES = frozenset({40001, 40014, 42001})


class TokenCache:
    """Process-scoped access token with its absolute expiry time.

    ``get`` returns None once the token is within ``margin`` seconds of
    expiring, so the next caller refreshes it. Concurrent refreshes are
    harmless; the last one wins.
    """

    def __init__(self, margin: int = TOKEN_REFRESH_MARGIN):
        self._margin = margin
        self._token: Optional[str] = None
        self._expires_at = 0.0

    def get(self, now: Optional[float] = None) -> Optional[str]:
        now = time.time() if now is None else now
        if self._token and now < self._expires_at - self._margin:
            return self._token
        return None

    def set(self, token: str, expires_in: int, now: Optional[float] = None) -> None:
        now = time.time() if now is None else now
        self._token = token
        self._expires_at = now + expires_in

    def invalidate(self) -> None:
        self._token = None
        self._expires_at = 0.0


class WeComClient:
    """Thin async client for the WeCom server API.

    Args:
        corp_id: CorpID.
        secret: Application secret.
        agent_id: Application agent id.
        session: Shared aiohttp client session.
        token_cache: Token cache, a private one when omitted.
        base_url: API root, overridable for tests.
    """

    def __init__(
        self,
        corp_id: str,
        secret: str,
        agent_id: str,
        session: aiohttp.ClientSession,
        token_cache: Optional[TokenCache] = None,
        base_url: str = WECOM_API_BASE,
    ):
        self._corp_id = corp_id
        self._secret = secret
        self._agent_id = int(agent_id)
        self._session = session
        self._tokens = token_cache or TokenCache()
        self._base_url = base_url.rstrip("/")

    async def _json(self, resp: aiohttp.ClientResponse) -> dict:
        resp.raise_for_status()
        data = orjson.loads(await resp.read())
        errcode = data.get("errcode", 0)
        if errcode != 0:
            if errcode in _TOKEN_ERRCODES:
                self._tokens.invalidate()
            raise WeComAPIError(errcode, data.get("errmsg", ""))
        return data

    async def get_access_token(self) -> str:
        """Return a cached token or fetch a new one."""
        token = self._tokens.get()
        if token:
            return token
        params = {"corpid": self._corp_id, "corpsecret": self._secret}
        async with self._session.get(
            f"{self._base_url}/cgi-bin/gettoken", params=params
        ) as resp:
            data = await self._json(resp)
        token = data.get("access_token")
        if not token:
            raise WeComAPIError(-1, "gettoken response without access_token")
        self._tokens.set(token, int(data.get("expires_in") or 7200))
        logger.info("WeCom access token refreshed")
        return token

    async def _post(self, path: str, body: dict, **params: Any) -> dict:
        token = await self.get_access_token()
        async with self._session.post(
            f"{self._base_url}{path}",
            params={"access_token": token, **params},
            data=orjson.dumps(body),
            headers={"Content-Type": "application/json"},
        ) as resp:
            return await self._json(resp)

    async def _get(self, path: str, **params: Any) -> dict:
        token = await self.get_access_token()
        async with self._session.get(
            f"{self._base_url}{path}",
            params={"access_token": token, **params},
        ) as resp:
            return await self._json(resp)

    async def send_text(self, user_id: str, content: str) -> None:
        await self._post("/cgi-bin/message/send", {
            "touser": user_id,
            "msgtype": "text",
            "agentid": self._agent_id,
            "text": {"content": content},
        })
        logger.debug("Text message sent to user=%s", user_id)

    async def send_markdown(self, user_id: str, content: str) -> None:
        await self._post("/cgi-bin/message/send", {
            "touser": user_id,
            "msgtype": "markdown",
            "agentid": self._agent_id,
            "markdown": {"content": content},
        })
        logger.debug("Markdown message sent to user=%s", user_id)

    async def create_menu(self, menu: dict) -> None:
        await self._post("/cgi-bin/menu/create", menu, agentid=self._agent_id)
        logger.info("WeCom menu created")

    async def get_menu(self) -> dict:
        data = await self._get("/cgi-bin/menu/get", agentid=self._agent_id)
        return {"button": data.get("button", [])}

    async def delete_menu(self) -> None:
        await self._get("/cgi-bin/menu/delete", agentid=self._agent_id)
        logger.info("WeCom menu deleted")
