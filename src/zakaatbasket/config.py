"""Settings loaded from the environment and an optional .env file."""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import find_dotenv, load_dotenv

from .money import to_minor

DEFAULT_API_URL = "http://localhost:3001"
DEFAULT_TIMEOUT = 15
DEFAULT_PAGE_SIZE = 20
DEFAULT_SUPPORT_AMOUNT = "1000"


@dataclass
class Settings:
    api_url: str = DEFAULT_API_URL
    api_token: Optional[str] = None
    timeout: int = DEFAULT_TIMEOUT
    page_size: int = DEFAULT_PAGE_SIZE
    default_support_amount: int = to_minor(DEFAULT_SUPPORT_AMOUNT)


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


def load_settings(env_file: Optional[str] = None) -> Settings:
    """Read settings from the environment.

    Values already in the environment win over the .env file.

    Args:
        env_file: Path to a .env file; defaults to the nearest .env found
            walking up from the current working directory

    Raises:
        ValueError: If a numeric variable cannot be parsed
    """
    load_dotenv(env_file or find_dotenv(usecwd=True))

    support_raw = os.getenv("ZAKAAT_DEFAULT_SUPPORT_AMOUNT", DEFAULT_SUPPORT_AMOUNT)
    try:
        support = to_minor(support_raw)
    except ValueError as e:
        raise ValueError(f"ZAKAAT_DEFAULT_SUPPORT_AMOUNT: {e}")

    return Settings(
        api_url=os.getenv("ZAKAAT_API_URL") or DEFAULT_API_URL,
        api_token=os.getenv("ZAKAAT_API_TOKEN") or None,
        timeout=_int_env("ZAKAAT_TIMEOUT", DEFAULT_TIMEOUT),
        page_size=_int_env("ZAKAAT_PAGE_SIZE", DEFAULT_PAGE_SIZE),
        default_support_amount=support,
    )
