"""
Configuration management for safehalt.

This module uses Pydantic's BaseSettings to manage configuration
through environment variables (prefix SAFEHALT_) and an optional .env
file. Settings are loaded once per run and never mutated.
"""
import json
import re
import shlex
import socket
from typing import Annotated, List, Literal, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from safehalt.utils.timeparse import parse_duration


class Settings(BaseSettings):
    """
    Safe shutdown settings.

    List values may be given as JSON arrays in the environment, e.g.
    SAFEHALT_CRITICAL_TASKS='["vzdump", "rsync"]'.
    """

    # Critical task detection
    CRITICAL_TASKS: List[str] = ["vzdump", "zfs", "pvesr", "rsync", "pve-zsync"]
    BACKUP_PATTERN: str = "vzdump|pve-zsync"
    POLL_INTERVAL: float = 300  # seconds

    # Gates
    MAX_LOAD: float = Field(default=1.5, gt=0)
    START_HOUR: int = Field(default=22, ge=0, le=23)

    # Identity and notification
    NODE_NAME: str = Field(default_factory=socket.gethostname)
    ADMIN_EMAIL: str = "root@localhost"
    NOTIFY_TRANSPORT: Literal["mail", "smtp"] = "mail"
    SMTP_HOST: str = "localhost"
    SMTP_PORT: int = 25
    MAIL_FROM: Optional[str] = None

    # Guest draining
    GUEST_SHUTDOWN_TIMEOUT: int = Field(default=60, gt=0)
    GUEST_SETTLE_MODE: Literal["poll", "fixed"] = "poll"
    GUEST_SETTLE_DELAY: float = 120
    GUEST_STOP_TIMEOUT: float = 300
    GUEST_STOP_POLL: float = 5

    # External commands
    COMMAND_TIMEOUT: float = 600  # 0 disables the outer timeout
    POWER_OFF_COMMAND: Annotated[List[str], NoDecode] = ["shutdown", "-h", "now"]

    LOCK_FILE: Optional[str] = "/run/safehalt.lock"
    DRY_RUN: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        env_prefix="SAFEHALT_",
        frozen=True,
        extra="ignore",
    )

    @field_validator(
        "POLL_INTERVAL",
        "GUEST_SETTLE_DELAY",
        "GUEST_STOP_TIMEOUT",
        "GUEST_STOP_POLL",
        "COMMAND_TIMEOUT",
        mode="before",
    )
    @classmethod
    def _parse_duration(cls, value):
        return parse_duration(value)

    @field_validator("BACKUP_PATTERN")
    @classmethod
    def _compile_pattern(cls, value: str) -> str:
        try:
            re.compile(value)
        except re.error as e:
            raise ValueError(f"not a valid regular expression: {e}") from e
        return value

    @field_validator("POWER_OFF_COMMAND", mode="before")
    @classmethod
    def _split_command(cls, value):
        if isinstance(value, str):
            if value.lstrip().startswith("["):
                return json.loads(value)
            return shlex.split(value)
        return value

    @field_validator("LOCK_FILE", mode="before")
    @classmethod
    def _empty_lock_disables(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @model_validator(mode="after")
    def _check_values(self) -> "Settings":
        if self.POLL_INTERVAL <= 0:
            raise ValueError("POLL_INTERVAL must be positive")
        if self.GUEST_STOP_POLL <= 0:
            raise ValueError("GUEST_STOP_POLL must be positive")
        if not self.POWER_OFF_COMMAND:
            raise ValueError("POWER_OFF_COMMAND must not be empty")
        return self

    @property
    def command_timeout(self) -> Optional[float]:
        """Outer timeout for external commands, None when disabled."""
        return self.COMMAND_TIMEOUT or None

    @property
    def mail_from(self) -> str:
        return self.MAIL_FROM or f"safehalt@{self.NODE_NAME}"


def load_settings(**overrides) -> Settings:
    """Load settings from the environment, applying keyword overrides."""
    return Settings(**overrides)
