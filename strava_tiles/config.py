"""Central configuration for the Strava tile explorer.

All values are constants imported by the rest of the package. Adjust as needed
for your environment. Secrets are read from environment variables (optionally
via a local `.env`).
"""

from __future__ import annotations

import importlib
import os


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_bool(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return default


# Load .env variables when python-dotenv is available.
_load_dotenv = None
try:
    _dotenv_mod = importlib.import_module("dotenv")
    _load_dotenv = getattr(_dotenv_mod, "load_dotenv", None)
except Exception:
    _load_dotenv = None

if callable(_load_dotenv):
    # Load .env from the current directory or any parent folder.
    _load_dotenv()


# ---------------------------------------------------------------------------
# Tiles
# ---------------------------------------------------------------------------
# Slippy-map zoom level used for every stored tile. Changing this on an
# existing database mixes zoom levels; start from a fresh database instead.
TILE_ZOOM = _env_int("TILE_ZOOM", 14)

# Largest latitude representable in Web Mercator.
MAX_MERCATOR_LATITUDE = 85.0511287798066


# ---------------------------------------------------------------------------
# Input/Output
# ---------------------------------------------------------------------------
# Paths can be absolute or relative.
TILE_DB_PATH = os.getenv("TILE_DB_PATH", "tiles.db")
GPX_DIR = os.getenv("GPX_DIR", "gpx")
MAP_OUTPUT_FILE = os.getenv("MAP_OUTPUT_FILE", "tiles_map.html")

# Use the defusedxml based extractor instead of the tolerant substring scanner.
STRICT_XML_EXTRACTION = _env_bool("STRICT_XML_EXTRACTION", False)


# ---------------------------------------------------------------------------
# Strava settings
# ---------------------------------------------------------------------------
STRAVA_BASE_URL = "https://www.strava.com/api/v3"
STRAVA_OAUTH_URL = "https://www.strava.com/oauth/token"

# Client credentials pulled from the environment. Do not hardcode secrets.
CLIENT_ID = os.getenv("STRAVA_CLIENT_ID", "")
CLIENT_SECRET = os.getenv("STRAVA_CLIENT_SECRET", "")
REFRESH_TOKEN = os.getenv("STRAVA_REFRESH_TOKEN", "")
ACCESS_TOKEN = os.getenv("STRAVA_ACCESS_TOKEN", "")

# Request timeout in seconds.
REQUEST_TIMEOUT = _env_int("REQUEST_TIMEOUT", 15)

# Activity list paging used by the importer.
STRAVA_IMPORT_PER_PAGE = _env_int("STRAVA_IMPORT_PER_PAGE", 50)

# Upper bound on pages walked when importing everything. Set to 0 to disable.
STRAVA_IMPORT_MAX_PAGES = _env_int("STRAVA_IMPORT_MAX_PAGES", 20)
