"""
Tests for application wiring and configuration.
"""
import base64
from datetime import date

import pytest
from aiohttp import test_utils
from pydantic import ValidationError

from mykeys.app import VAULT_KEY, create_app, send_expiry_reminder
from mykeys.conf import AppConfig, WeComConfig
from mykeys.storage import MemoryStorage

AES_KEY = base64.b64encode(bytes(range(32))).decode("ascii").rstrip("=")


class RecordingClient:
    def __init__(self):
        self.sent = []

    async def send_text(self, user_id, content):
        self.sent.append((user_id, content))


def _wecom(**overrides):
    values = {
        "corp_id": "ww01",
        "agent_id": "1000002",
        "secret": "s",
        "token": "t",
        "encoding_aes_key": AES_KEY,
    }
    values.update(overrides)
    return WeComConfig(**values)


class TestConfig:

    def test_short_encrypt_key(self):
        with pytest.raises(ValidationError):
            AppConfig(encrypt_key="short")

    def test_log_level_normalised(self):
        assert AppConfig(encrypt_key="k" * 16, log_level="debug").log_level == "DEBUG"

    def test_bad_aes_key(self):
        with pytest.raises(ValidationError):
            _wecom(encoding_aes_key="x" * 43)

    def test_agent_id_numeric(self):
        with pytest.raises(ValidationError):
            _wecom(agent_id="abc")

    def test_reminder_needs_wecom(self):
        with pytest.raises(ValidationError):
            AppConfig(encrypt_key="k" * 16, remind_interval=3600)

    def test_reminders_enabled(self):
        config = AppConfig(
            encrypt_key="k" * 16, remind_interval=3600, remind_user="alice", wecom=_wecom(),
        )
        assert config.reminders_enabled

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("ENCRYPT_KEY", "k" * 20)
        monkeypatch.setenv("PORT", "8080")
        monkeypatch.setenv("WECOM_CORP_ID", "ww01")
        monkeypatch.setenv("WECOM_AGENT_ID", "1000002")
        monkeypatch.setenv("WECOM_SECRET", "s")
        monkeypatch.setenv("WECOM_TOKEN", "t")
        monkeypatch.setenv("WECOM_ENCODING_AES_KEY", AES_KEY)
        monkeypatch.delenv("DATABASE_URL", raising=False)
        config = AppConfig.from_env()
        assert config.port == 8080
        assert config.database_url is None
        assert config.wecom.corp_id == "ww01"


class TestApp:

    @pytest.mark.asyncio
    async def test_health(self):
        app = await create_app(AppConfig(encrypt_key="k" * 16), storage=MemoryStorage())
        client = test_utils.TestClient(test_utils.TestServer(app))
        await client.start_server()
        try:
            resp = await client.get("/health")
            assert resp.status == 200
            assert (await resp.json())["status"] == "ok"
            # WeCom routes are only mounted when configured
            assert (await client.get("/wecom/callback")).status == 404
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_reminder_sent(self):
        app = await create_app(AppConfig(encrypt_key="k" * 16), storage=MemoryStorage())
        vault = app[VAULT_KEY]
        await vault.save_secret("cert", "s", "a", "b", expires_at=date.today().isoformat())
        client = RecordingClient()
        assert await send_expiry_reminder(vault, client, "alice") is True
        [(user_id, content)] = client.sent
        assert user_id == "alice"
        assert "• cert" in content

    @pytest.mark.asyncio
    async def test_no_reminder_when_nothing_due(self):
        app = await create_app(AppConfig(encrypt_key="k" * 16), storage=MemoryStorage())
        client = RecordingClient()
        assert await send_expiry_reminder(app[VAULT_KEY], client, "alice") is False
        assert client.sent == []
