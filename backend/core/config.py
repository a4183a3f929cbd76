import os

from dotenv import load_dotenv

# Load environment variables from .env file
# Load .env.local first (for local development), then .env (fallback)
load_dotenv(".env.local", override=True)  # Local development overrides
load_dotenv()  # Load .env if exists (won't override existing vars)
# General config in a central place


def _env_bool(name: str, default: str = "false") -> bool:
    """Parse a boolean-like environment variable.

    Accepts a broad set of truthy values to be user-friendly.
    """
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on", "y"}


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        return default


# CORS configuration
# Comma-separated list of allowed origins; if empty, allow all (not recommended with credentials)
RAW_ALLOWED_ORIGINS = os.getenv("ALLOWED_CORS_ORIGINS", "")
ALLOWED_CORS_ORIGINS = [o.strip() for o in RAW_ALLOWED_ORIGINS.split(",") if o.strip()]

# ----------------------------------------------------------------------------
# Public geodata services
# ----------------------------------------------------------------------------

# Nominatim and Overpass both require an identifying User-Agent
USER_AGENT = os.getenv(
    "ORPAILLAGE_USER_AGENT",
    "Orpaillage, gold-bearing waterway discovery for France",
)

NOMINATIM_URL = os.getenv("NOMINATIM_URL", "https://nominatim.openstreetmap.org/search")
GEONAMES_URL = os.getenv("GEONAMES_URL", "http://api.geonames.org/searchJSON")
OVERPASS_API_URL = os.getenv("OVERPASS_API_URL", "https://overpass-api.de/api/interpreter")
BRGM_WMS_URL = os.getenv("BRGM_WMS_URL", "https://geoservices.brgm.fr/geologie")

# ISO 3166-1 alpha-2 code used to restrict geocoding
GEOCODER_COUNTRY_CODE = os.getenv("GEOCODER_COUNTRY_CODE", "fr")

# Per-call HTTP timeout (seconds) for geocoding and evidence lookups
HTTP_TIMEOUT_SECONDS = _env_int("HTTP_TIMEOUT_SECONDS", 20)
# Server-side timeout embedded in Overpass QL queries
OVERPASS_TIMEOUT_SECONDS = _env_int("OVERPASS_TIMEOUT_SECONDS", 60)


def get_geonames_user() -> str:
    """Return the GeoNames username; empty string disables the GeoNames fallback.

    Exposed as a function so tests can override the environment at runtime.
    """
    return os.getenv("GEONAMES_USER", "")


# ----------------------------------------------------------------------------
# Gold search pipeline
# ----------------------------------------------------------------------------

LLM_PROVIDER = os.getenv("LLM_PROVIDER", "openai").lower()
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4.1")

GOLD_SEARCH_TEMPERATURE = _env_float("GOLD_SEARCH_TEMPERATURE", 0.2)
GOLD_SEARCH_UNKNOWN_TEMPERATURE = _env_float("GOLD_SEARCH_UNKNOWN_TEMPERATURE", 0.3)
GOLD_SEARCH_MAX_TOKENS = _env_int("GOLD_SEARCH_MAX_TOKENS", 4096)

# Upper bound on distinct waterway names listed in a single prompt
GOLD_SEARCH_MAX_PROMPT_WATERWAYS = _env_int("GOLD_SEARCH_MAX_PROMPT_WATERWAYS", 80)

# Radius (km) of the secondary geometry query used when snapping unmatched names
GOLD_SEARCH_SNAP_RADIUS_KM = _env_float("GOLD_SEARCH_SNAP_RADIUS_KM", 10.0)

DEFAULT_SEARCH_RADIUS_KM = _env_float("GOLD_SEARCH_DEFAULT_RADIUS_KM", 50.0)

# Query the BRGM geology WMS for evidence (best effort)
BRGM_EVIDENCE_ENABLED = _env_bool("BRGM_EVIDENCE_ENABLED", default="true")


def get_use_known_rivers() -> bool:
    """Return whether the known-rivers fixture may answer searches (offline demos)."""
    return _env_bool("GOLD_SEARCH_USE_KNOWN_RIVERS", default="false")


# In-memory search sessions: idle lifetime and upper bound
GOLD_SEARCH_SESSION_TTL_SECONDS = _env_float("GOLD_SEARCH_SESSION_TTL_SECONDS", 3600.0)
GOLD_SEARCH_MAX_SESSIONS = _env_int("GOLD_SEARCH_MAX_SESSIONS", 500)
