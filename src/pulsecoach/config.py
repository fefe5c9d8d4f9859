"""Runtime settings, read from the environment (and a ``.env`` file)."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from dotenv import find_dotenv, load_dotenv

DEFAULT_DATABASE_URL = "sqlite:///./pulsecoach.db"
DEFAULT_USER_ID = "local"
DEFAULT_LOG_LEVEL = "WARNING"


@dataclass(frozen=True)
class Settings:
    database_url: str = DEFAULT_DATABASE_URL
    user_id: str = DEFAULT_USER_ID
    log_level: str = DEFAULT_LOG_LEVEL

    @classmethod
    def from_env(cls, dotenv: bool = True) -> Settings:
        """Build settings from ``PULSECOACH_*`` variables.

        ``.env`` is looked up from the working directory upwards; its values
        never override variables already set in the process environment.
        """
        if dotenv:
            load_dotenv(find_dotenv(usecwd=True), override=False)
        return cls(
            database_url=os.getenv("PULSECOACH_DATABASE_URL", DEFAULT_DATABASE_URL),
            user_id=os.getenv("PULSECOACH_USER_ID", DEFAULT_USER_ID),
            log_level=os.getenv("PULSECOACH_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper(),
        )

    @property
    def log_level_number(self) -> int:
        level = logging.getLevelName(self.log_level)
        if not isinstance(level, int):
            raise ValueError(f"unknown log level: {self.log_level!r}")
        return level
