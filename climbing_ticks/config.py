"""Configuration constants for the climbing tick importer."""
from __future__ import annotations

from pathlib import Path

# Mountain Project Data API endpoints
GET_TICKS_URL: str = "https://www.mountainproject.com/data/get-ticks"
GET_ROUTES_URL: str = "https://www.mountainproject.com/data/get-routes"

# The get-routes endpoint is documented as returning at most 200 routes
MAX_ROUTES_PER_REQUEST: int = 200

# Timeout (seconds) for HTTP requests to the Data API
HTTP_TIMEOUT: int = 60

# Default sleep duration between API requests (seconds)
DEFAULT_SLEEP_SECONDS: float = 0.1

# Default path for the SQLite database that stores all documents
DEFAULT_DATABASE_PATH: Path = Path("data/climbing_ticks.db")

# Directory for exported datasets (tick tables, raw API responses)
EXPORT_DATA_DIR: Path = Path("data/export")

# Default user id used to derive document keys
DEFAULT_USER_ID: str = "default"

# Environment variables consulted for Data API credentials
EMAIL_ENV_VAR: str = "MP_EMAIL"
API_KEY_ENV_VAR: str = "MP_API_KEY"

# Number of routes kept in the top-routes breakdown. This is larger than what
# is ever displayed so that removals rarely push a real top route out.
NUM_TOP_ROUTES: int = 20

# Bump whenever a breakdown is added to Counts; older docs get rebuilt.
COUNTS_VERSION: int = 1

# Maximum number of raw API items stored in a single import snapshot document
MAX_IMPORTED_ITEMS_PER_DOC: int = 1000

# Decimal places kept when bucketing route coordinates (0.1 deg ~ 11 km)
LAT_LONG_PRECISION: int = 1
