"""
Configuration and settings loading for SplitLedger
"""
from __future__ import annotations
import json
import logging
import os
from dataclasses import dataclass
from decimal import Decimal

from utils import app_dir

logger = logging.getLogger(__name__)

# Input limits
MIN_NAME_LENGTH = 2
MAX_NAME_LENGTH = 50
MAX_NOTE_LENGTH = 500
MAX_NOTE_WORDS = 100
MIN_AMOUNT_VALUE = Decimal("0.01")
MAX_AMOUNT_VALUE = Decimal("999999.99")

# Friends with at least this much outstanding count as "high balance"
HIGH_BALANCE_THRESHOLD = Decimal("20.00")

DEFAULT_OWNER = "You"
DEFAULT_CURRENCY = "USD"
DEFAULT_EMOJI = "👤"
SUPPORTED_CURRENCIES = ["USD", "CAD", "INR", "MXN"]


@dataclass
class Settings:
    """Runtime settings for one ledger owner"""
    owner: str = DEFAULT_OWNER
    default_currency: str = DEFAULT_CURRENCY
    owner_emoji: str = DEFAULT_EMOJI
    data_dir: str = ""


def load_settings(path: str = "") -> Settings:
    """
    Load settings from JSON file (default: <app_dir>/settings.json).
    Environment variables SPLIT_LEDGER_OWNER and SPLIT_LEDGER_CURRENCY win
    over the file.
    """
    base = app_dir()
    path = path or os.path.join(base, "settings.json")
    data = {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        pass
    except (OSError, ValueError) as ex:
        logger.warning("Ignoring unreadable settings file %s: %s", path, ex)
    if not isinstance(data, dict):
        logger.warning("Ignoring settings file %s: expected an object", path)
        data = {}

    owner = os.getenv("SPLIT_LEDGER_OWNER") or str(data.get("owner") or DEFAULT_OWNER)
    currency = os.getenv("SPLIT_LEDGER_CURRENCY") or str(data.get("default_currency") or DEFAULT_CURRENCY)
    if currency.upper() not in SUPPORTED_CURRENCIES:
        logger.warning("Currency %s has no display symbol; amounts will show without one", currency)
    return Settings(
        owner=owner.strip() or DEFAULT_OWNER,
        default_currency=currency.upper(),
        owner_emoji=str(data.get("owner_emoji") or DEFAULT_EMOJI),
        data_dir=str(data.get("data_dir") or os.path.join(base, "data")),
    )


def save_settings(settings: Settings, path: str = "") -> None:
    """Write settings back to JSON file"""
    path = path or os.path.join(app_dir(), "settings.json")
    with open(path, "w", encoding="utf-8") as f:
        json.dump(
            {
                "owner": settings.owner,
                "default_currency": settings.default_currency,
                "owner_emoji": settings.owner_emoji,
                "data_dir": settings.data_dir,
            },
            f,
            ensure_ascii=False,
            indent=2,
        )
