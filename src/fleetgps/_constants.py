"""Internal constants shared across the library."""

USER_AGENT = "fleetgps/1 (+aiohttp)"

REST_PREFIX = "/rest/v1"
STORAGE_PREFIX = "/storage/v1/object"

DEFAULT_STORAGE_BUCKET = "vehicle-documents"
DEFAULT_VEHICLES_TABLE = "vehicles"
DEFAULT_UPLOADS_TABLE = "gps_uploads"

# ------------------------------------------------------------------
# GPS export parsing
# ------------------------------------------------------------------

# Header substrings that identify the distance column, in priority order.
DISTANCE_KEYWORDS: tuple[str, ...] = (
    "km",
    "kilometer",
    "kilometre",
    "distance",
    "mileage",
    "odometer",
    "total",
)

# Header substrings that identify the free-text vehicle label column.
VEHICLE_NAME_KEYWORDS: tuple[str, ...] = (
    "vehicle",
    "target name",
    "name",
    "plate",
    "unit",
    "device",
    "asset",
)

# Last-line fallback: numeric tokens at or below this are treated as counts.
FALLBACK_TOTAL_THRESHOLD = 100.0

# Header discovery only looks this far into the file.
HEADER_SCAN_LINES = 10

DEFAULT_TOTAL_LABEL = "Total"

CSV_EXTENSIONS: frozenset[str] = frozenset({".csv", ".txt"})
EXCEL_EXTENSIONS: frozenset[str] = frozenset({".xls", ".xlsx", ".xltx"})

CSV_MEDIA_TYPES: frozenset[str] = frozenset(
    {
        "text/csv",
        "text/plain",
        "application/csv",
        "text/comma-separated-values",
    }
)
EXCEL_MEDIA_TYPES: frozenset[str] = frozenset(
    {
        "application/vnd.ms-excel",
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        "application/vnd.openxmlformats-officedocument.spreadsheetml.template",
    }
)

# ------------------------------------------------------------------
# Backup documents
# ------------------------------------------------------------------

BACKUP_VERSION = "2.0"

# A UUID no row ever has; PostgREST refuses unfiltered deletes.
NIL_UUID = "00000000-0000-0000-0000-000000000000"
