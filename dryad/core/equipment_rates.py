from __future__ import annotations

from decimal import Decimal
from pathlib import Path

import yaml

CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"
FALLBACK_TYPE = "OTHER"


def _load_rate_config(path: Path | None = None) -> dict:
    path = path or CONFIG_DIR / "equipment_rates.yaml"
    if not path.exists():
        return {"daily_rates": {FALLBACK_TYPE: 20}, "descriptions": {}, "categories": {}}
    with path.open("r", encoding="utf-8") as fp:
        return yaml.safe_load(fp) or {}


def load_equipment_rates(path: Path | None = None) -> dict[str, Decimal]:
    config = _load_rate_config(path)
    rates = {str(key): Decimal(str(value)) for key, value in (config.get("daily_rates") or {}).items()}
    rates.setdefault(FALLBACK_TYPE, Decimal("20"))
    return rates


RATE_CONFIG = _load_rate_config()
EQUIPMENT_DAILY_RATES: dict[str, Decimal] = load_equipment_rates()


def get_daily_rate(equipment_type: str | None, rates: dict[str, Decimal] | None = None) -> Decimal:
    table = EQUIPMENT_DAILY_RATES if rates is None else rates
    if equipment_type and equipment_type in table:
        return table[equipment_type]
    return table.get(FALLBACK_TYPE, EQUIPMENT_DAILY_RATES[FALLBACK_TYPE])


def describe_equipment(equipment_type: str) -> str:
    descriptions = RATE_CONFIG.get("descriptions") or {}
    return str(descriptions.get(equipment_type) or descriptions.get(FALLBACK_TYPE) or "Other equipment")


def equipment_category(equipment_type: str) -> str:
    for category, members in (RATE_CONFIG.get("categories") or {}).items():
        if equipment_type in (members or []):
            return str(category)
    return FALLBACK_TYPE
