import json
import os

DEFAULT_GOG_PRODUCT_OVERRIDES = {
    "292030": {"id": "1207664643", "slug": "the_witcher_3_wild_hunt"},
    "1091500": {"id": "1423049311", "slug": "cyberpunk_2077"},
    "1086940": {"id": "1456460669", "slug": "baldurs_gate_iii"},
    "435150": {"id": "1584823040", "slug": "divinity_original_sin_2"},
    "632470": {"id": "1771589310", "slug": "disco_elysium"},
    "413150": {"id": "1453375253", "slug": "stardew_valley"},
    "105600": {"id": "1207665503", "slug": "terraria"},
    "367520": {"id": "1308320804", "slug": "hollow_knight"},
    "646570": {"id": "1950754973", "slug": "slay_the_spire"},
    "588650": {"id": "1237807960", "slug": "dead_cells"},
    "20900": {"id": "1207658924", "slug": "the_witcher"},
}

STORE_FALLBACK_URLS = {
    "Steam": "https://store.steampowered.com/app/{appid}",
    "GOG": "https://www.gog.com/en/games",
    "Epic Games": "https://store.epicgames.com/browse",
    "Nuuvem": "https://www.nuuvem.com/br-pt/catalog",
    "Humble Store": "https://www.humblebundle.com/store",
    "GreenManGaming": "https://www.greenmangaming.com/",
    "Fanatical": "https://www.fanatical.com/",
}


def _csv(name: str, default: str) -> list[str]:
    raw = os.getenv(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


def _json(name: str, default):
    raw = os.getenv(name)
    if not raw:
        return default
    return json.loads(raw)


class Settings:
    DATABASE_URL = os.getenv(
        "DATABASE_URL",
        "postgresql+psycopg2://gamedeals:secret@db:5432/gamedeals",
    )

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT = os.getenv("LOG_FORMAT", "json")  # json|console

    STORE_COUNTRY = os.getenv("STORE_COUNTRY", "BR")
    STORE_LANGUAGE = os.getenv("STORE_LANGUAGE", "pt")
    DISPLAY_CURRENCY = os.getenv("DISPLAY_CURRENCY", "BRL")
    DISPLAY_CURRENCY_SYMBOL = os.getenv("DISPLAY_CURRENCY_SYMBOL", "R$")

    CONFIGURED_STORES = _csv("CONFIGURED_STORES", "Steam,GOG,Epic Games,Nuuvem")
    ENABLED_ADAPTERS = _csv("ENABLED_ADAPTERS", "steam,gog,cheapshark,nuuvem")

    # cache-hit thresholds
    CACHE_MAX_AGE_MINUTES = int(os.getenv("CACHE_MAX_AGE_MINUTES", "60"))
    CACHE_MIN_AVAILABLE = int(os.getenv("CACHE_MIN_AVAILABLE", "1"))
    CACHE_MIN_ROWS = int(os.getenv("CACHE_MIN_ROWS", "2"))

    EXCHANGE_RATE_URL = os.getenv(
        "EXCHANGE_RATE_URL", "https://open.er-api.com/v6/latest/USD"
    )
    FALLBACK_USD_RATE = os.getenv("FALLBACK_USD_RATE", "5.40")

    ESTIMATE_FACTORS = _json("ESTIMATE_FACTORS", {"Nuuvem": 0.92, "Epic Games": 0.95})
    DEFAULT_ESTIMATE_FACTOR = float(os.getenv("DEFAULT_ESTIMATE_FACTOR", "0.93"))

    GOG_PRODUCT_OVERRIDES = _json("GOG_PRODUCT_OVERRIDES", DEFAULT_GOG_PRODUCT_OVERRIDES)
    STORE_FALLBACK_URLS = STORE_FALLBACK_URLS

    HTTP_TIMEOUT_SECONDS = float(os.getenv("HTTP_TIMEOUT_SECONDS", "10"))
    OUTBOUND_PROXY = os.getenv("OUTBOUND_PROXY")


settings = Settings()
