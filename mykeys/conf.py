"""
MyKeys Configuration — constants and validated settings.

Settings are read from environment variables:
    ENCRYPT_KEY = <content encryption secret, at least 16 characters>
    DATABASE_URL = <postgres dsn> (optional, in-memory storage otherwise)
    WECOM_CORP_ID / WECOM_AGENT_ID / WECOM_SECRET / WECOM_TOKEN /
    WECOM_ENCODING_AES_KEY = <WeCom application credentials>

Security Note:
    Never log key material or tokens. Only log which settings are present.
"""
import os
import base64
import binascii
import logging
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

logger = logging.getLogger("mykeys.conf")

# Sessions idle for longer than this (seconds) are read back as idle.
SESSION_TIMEOUT = 300
# Access tokens are refreshed this many seconds before they expire.
TOKEN_REFRESH_MARGIN = 60
NONCE_SIZE = 12  # 96-bit AES-GCM nonce
KEY_LENGTH = 32  # AES-256
RAW_SITE = "raw"
SEARCH_LIMIT = 10
REMINDER_DAYS = 7
EXPIRING_DAYS = 30

WECOM_API_BASE = "https://qyapi.weixin.qq.com"


class WeComConfig(BaseModel):
    """WeCom application credentials."""

    corp_id: str = Field(min_length=1)
    agent_id: str = Field(min_length=1)
    secret: str = Field(min_length=1)
    token: str = Field(min_length=1)
    encoding_aes_key: str = Field(min_length=43, max_length=43)

    @field_validator("agent_id")
    @classmethod
    def validate_agent_id(cls, v: str) -> str:
        """Agent ids are numeric."""
        if not v.isdigit():
            raise ValueError(f"WECOM_AGENT_ID must be numeric, got {v!r}")
        return v

    @field_validator("encoding_aes_key")
    @classmethod
    def validate_encoding_aes_key(cls, v: str) -> str:
        """EncodingAESKey must decode to a 32-byte AES key."""
        try:
            raw = base64.b64decode(v + "=", validate=True)
        except binascii.Error as err:
            raise ValueError("WECOM_ENCODING_AES_KEY is not valid base64") from err
        if len(raw) != KEY_LENGTH:
            raise ValueError(
                f"WECOM_ENCODING_AES_KEY must decode to {KEY_LENGTH} bytes, "
                f"got {len(raw)}"
            )
        return v


class AppConfig(BaseModel):
    """Validated application configuration."""

    encrypt_key: str
    database_url: Optional[str] = None
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3000, ge=1, le=65535)
    log_level: str = Field(default="INFO")
    session_timeout: int = Field(default=SESSION_TIMEOUT, ge=1)
    remind_user: Optional[str] = None
    remind_interval: int = Field(default=0, ge=0)
    sync_menu: bool = False
    wecom: Optional[WeComConfig] = None

    @field_validator("encrypt_key")
    @classmethod
    def validate_encrypt_key(cls, v: str) -> str:
        """Reject short content encryption secrets."""
        if len(v) < 16:
            raise ValueError("ENCRYPT_KEY must be at least 16 characters")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unsupported log level: {v}")
        return level

    @model_validator(mode="after")
    def validate_reminder(self) -> "AppConfig":
        """Reminders need a platform to deliver through."""
        if self.remind_interval and self.wecom is None:
            raise ValueError("REMIND_INTERVAL requires the WeCom settings")
        return self

    @property
    def reminders_enabled(self) -> bool:
        return bool(self.remind_interval and self.remind_user and self.wecom)

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Create AppConfig by loading values from environment.

        Returns:
            Populated AppConfig instance.
        """
        wecom = None
        if os.environ.get("WECOM_CORP_ID"):
            wecom = WeComConfig(
                corp_id=os.environ["WECOM_CORP_ID"],
                agent_id=os.environ.get("WECOM_AGENT_ID", ""),
                secret=os.environ.get("WECOM_SECRET", ""),
                token=os.environ.get("WECOM_TOKEN", ""),
                encoding_aes_key=os.environ.get("WECOM_ENCODING_AES_KEY", ""),
            )
        else:
            logger.warning("WECOM_CORP_ID not set, WeCom callback disabled")
        return cls(
            encrypt_key=os.environ.get("ENCRYPT_KEY", ""),
            database_url=os.environ.get("DATABASE_URL") or None,
            host=os.environ.get("HOST", "0.0.0.0"),
            port=int(os.environ.get("PORT", "3000")),
            log_level=os.environ.get("LOG_LEVEL", "INFO"),
            session_timeout=int(
                os.environ.get("SESSION_TIMEOUT", str(SESSION_TIMEOUT))
            ),
            remind_user=os.environ.get("REMIND_USER") or None,
            remind_interval=int(os.environ.get("REMIND_INTERVAL", "0")),
            sync_menu=os.environ.get("WECOM_SYNC_MENU", "false").lower() == "true",
            wecom=wecom,
        )
