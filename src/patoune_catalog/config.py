import os
from dataclasses import dataclass
from typing import Dict, Optional

from .logging import get_logger

log = get_logger("catalog-config")

DEFAULT_PET_PROVIDER_URL = "https://world.openpetfoodfacts.org"
DEFAULT_FOOD_PROVIDER_URL = "https://world.openfoodfacts.org"
DEFAULT_PROVIDER_TIMEOUT = 5.0
DEFAULT_USER_AGENT = "patoune-catalog/0.1 (+https://patoune.app)"
DEFAULT_HISTORY_LIMIT = 50
DEFAULT_SEARCH_LIMIT = 20


def _find_upwards(start_dir: str, filename: str) -> Optional[str]:
    """Return first matching file found when walking up from start_dir."""
    d = os.path.abspath(start_dir or ".")
    while True:
        candidate = os.path.join(d, filename)
        if os.path.isfile(candidate):
            return candidate
        parent = os.path.dirname(d)
        if parent == d:
            return None
        d = parent


def _read_dotenv(dotenv_dir: str) -> Dict[str, str]:
    """Minimal .env reader.

    - Reads key=value pairs, ignores comments (#/;) and blank lines.
    - Trims single/double quotes around the value.
    - Returns mapping; does not mutate environment.
    """
    env: Dict[str, str] = {}
    path = _find_upwards(dotenv_dir, ".env")
    if not path:
        log.debug(f"No .env found starting from: {os.path.abspath(dotenv_dir)}")
        return env
    try:
        with open(path, "r", encoding="utf-8") as f:
            for raw in f:
                line = raw.strip()
                if not line or line.startswith("#") or line.startswith(";"):
                    continue
                if "=" not in line:
                    continue
                k, v = line.split("=", 1)
                v = v.strip()
                if len(v) >= 2 and v[0] == v[-1] and v[0] in ("'", '"'):
                    v = v[1:-1]
                env[k.strip()] = v.strip()
        log.debug(f"Loaded {len(env)} key(s) from .env at {path}")
    except OSError as e:
        log.warning(f"Failed reading .env: {e}")
    return env


def _lookup(key: str, env: Dict[str, str]) -> Optional[str]:
    v = os.environ.get(key)
    if v is None:
        v = env.get(key)
    v = v.strip() if isinstance(v, str) else None
    return v or None


def _number(key: str, env: Dict[str, str], default: float) -> float:
    raw = _lookup(key, env)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        log.warning(f"{key}={raw!r} is not a number; using {default}")
        return default
    if value <= 0:
        log.warning(f"{key} must be positive; using {default}")
        return default
    return value


@dataclass
class CatalogSettings:
    pet_provider_url: str = DEFAULT_PET_PROVIDER_URL
    food_provider_url: str = DEFAULT_FOOD_PROVIDER_URL
    provider_timeout: float = DEFAULT_PROVIDER_TIMEOUT
    user_agent: str = DEFAULT_USER_AGENT
    history_limit: int = DEFAULT_HISTORY_LIMIT
    search_limit: int = DEFAULT_SEARCH_LIMIT


def load_provider_urls(dotenv_dir: str) -> Dict[str, str]:
    """Return base URLs keyed by provider name, pet-specific provider first."""
    env = _read_dotenv(dotenv_dir)
    return {
        "openpetfoodfacts": (_lookup("PET_PROVIDER_URL", env) or DEFAULT_PET_PROVIDER_URL).rstrip("/"),
        "openfoodfacts": (_lookup("FOOD_PROVIDER_URL", env) or DEFAULT_FOOD_PROVIDER_URL).rstrip("/"),
    }


def build_settings(dotenv_dir: Optional[str] = None) -> CatalogSettings:
    """Collect catalog settings from env first, then .env, then defaults."""
    dotenv_dir = dotenv_dir or os.getcwd()
    env = _read_dotenv(dotenv_dir)
    urls = load_provider_urls(dotenv_dir)
    settings = CatalogSettings(
        pet_provider_url=urls["openpetfoodfacts"],
        food_provider_url=urls["openfoodfacts"],
        provider_timeout=_number("PROVIDER_TIMEOUT", env, DEFAULT_PROVIDER_TIMEOUT),
        user_agent=_lookup("PROVIDER_USER_AGENT", env) or DEFAULT_USER_AGENT,
        history_limit=int(_number("CATALOG_HISTORY_LIMIT", env, DEFAULT_HISTORY_LIMIT)),
        search_limit=int(_number("CATALOG_SEARCH_LIMIT", env, DEFAULT_SEARCH_LIMIT)),
    )
    log.info(f"Pet provider       : {settings.pet_provider_url}")
    log.info(f"Food provider      : {settings.food_provider_url}")
    log.info(f"Provider timeout   : {settings.provider_timeout}s")
    return settings
