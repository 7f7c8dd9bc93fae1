import os
import yaml


DEFAULTS = {
    "amount_tolerance": 0.01,
    "ledger": {"timeout_seconds": 15, "page_size": 1000},
    "currency": {
        "default_symbol": "₹",
        "symbols": {
            "india": "₹",
            "usa": "$",
            "united states": "$",
            "uk": "£",
            "united kingdom": "£",
            "singapore": "S$",
            "uae": "AED",
            "japan": "¥",
        },
    },
    "report": {"show_reasons": False},
}


def _config_path() -> str:
    """環境変数から毎回パスを取得（テストでの monkeypatch に追従するため）。"""
    default = os.path.join(os.path.dirname(os.path.dirname(__file__)), "config", "status.yml")
    return os.getenv("DUES_STATUS_CONFIG", default)


def load_status_config() -> dict:
    try:
        with open(_config_path(), "r", encoding="utf-8") as f:
            cfg = yaml.safe_load(f) or {}
    except FileNotFoundError:
        return DEFAULTS

    # shallow merge defaults
    merged = dict(DEFAULTS)
    for k, v in (cfg or {}).items():
        if isinstance(v, dict) and isinstance(merged.get(k), dict):
            mv = dict(merged[k])
            mv.update(v)
            merged[k] = mv
        else:
            merged[k] = v
    return merged


def currency_symbol(country, cfg: dict = None) -> str:
    currency = (cfg or DEFAULTS).get("currency", {})
    default = currency.get("default_symbol", "₹")
    if not country:
        return default
    return currency.get("symbols", {}).get(str(country).strip().lower(), default)
