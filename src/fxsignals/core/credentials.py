"""Multi-source credential loading for FastForex and Telegram.

Priority order (first match wins):

1. Environment variables (``FASTFOREX_API_KEY``; ``TELEGRAM_BOT_TOKEN`` and
   ``TELEGRAM_CHAT_ID``)
2. OS keyring, service ``fxsignals``
3. Legacy plaintext files in the data directory (``fastforex_key.txt``;
   ``telegram_token.txt`` and ``telegram_chat_id.txt``)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

import keyring
from keyring.errors import KeyringError

from fxsignals.core.exceptions import ConfigError

logger = logging.getLogger(__name__)

_KEYRING_SERVICE = "fxsignals"


@dataclass(frozen=True)
class FastForexCredentials:
    """API key for the FastForex rate provider."""

    api_key: str

    @property
    def is_valid(self) -> bool:
        return bool(self.api_key)

    @classmethod
    def load(cls, base_dir: Path | None = None) -> FastForexCredentials:
        """Load the key from env, keyring or ``fastforex_key.txt``.

        Check :attr:`is_valid` before use; the key is empty when nothing was
        found anywhere.
        """
        key = _first_source(
            "FastForex",
            env_names=("FASTFOREX_API_KEY",),
            keyring_names=("fastforex_api_key",),
            file_names=("fastforex_key.txt",),
            base_dir=base_dir,
        )
        return cls(api_key=key[0] if key else "")

    @classmethod
    def require(cls, base_dir: Path | None = None) -> FastForexCredentials:
        """Like :meth:`load`, but raise :class:`ConfigError` when no key exists."""
        creds = cls.load(base_dir)
        if not creds.is_valid:
            raise ConfigError(
                "No FastForex API key found. Set FASTFOREX_API_KEY, store "
                "'fastforex_api_key' in the keyring or create fastforex_key.txt"
            )
        return creds


@dataclass(frozen=True)
class TelegramCredentials:
    """Bot token and target chat for Telegram notifications."""

    bot_token: str
    chat_id: str

    @property
    def is_valid(self) -> bool:
        return bool(self.bot_token) and bool(self.chat_id)

    @classmethod
    def load(cls, base_dir: Path | None = None) -> TelegramCredentials:
        values = _first_source(
            "Telegram",
            env_names=("TELEGRAM_BOT_TOKEN", "TELEGRAM_CHAT_ID"),
            keyring_names=("telegram_bot_token", "telegram_chat_id"),
            file_names=("telegram_token.txt", "telegram_chat_id.txt"),
            base_dir=base_dir,
        )
        if not values:
            return cls(bot_token="", chat_id="")
        return cls(bot_token=values[0], chat_id=values[1])


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _first_source(
    label: str,
    env_names: tuple[str, ...],
    keyring_names: tuple[str, ...],
    file_names: tuple[str, ...],
    base_dir: Path | None,
) -> tuple[str, ...] | None:
    """Return the values from the first source that has all of them."""
    values = tuple(os.environ.get(name, "").strip() for name in env_names)
    if all(values):
        logger.info("Loaded %s credentials from environment variables.", label)
        return values

    try:
        values = tuple(
            (keyring.get_password(_KEYRING_SERVICE, name) or "").strip() for name in keyring_names
        )
    except KeyringError as exc:
        logger.debug("Keyring unavailable for %s credentials: %s", label, exc)
        values = ()
    if values and all(values):
        logger.info("Loaded %s credentials from OS keyring.", label)
        return values

    if base_dir is None:
        base_dir = Path.cwd()
    values = tuple(_read_file(base_dir / name) for name in file_names)
    if all(values):
        logger.info("Loaded %s credentials from legacy text files.", label)
        return values

    logger.warning("No %s credentials found in env vars, keyring, or legacy files.", label)
    return None


def _read_file(path: Path) -> str:
    """Read and strip a single-line credential file. Return '' on failure."""
    try:
        return path.read_text(encoding="utf-8").strip()
    except OSError:
        return ""
