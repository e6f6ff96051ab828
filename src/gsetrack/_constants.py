"""Internal constants shared across the library."""

#: Schema generation of the bundled reference data. Bump whenever the shape
#: of persisted records changes incompatibly; a mismatch forces a reseed.
#: 1.1 introduced the canonical mobility classes.
SCHEMA_VERSION = "1.1"

# ------------------------------------------------------------------
# Persistent store key namespace
# ------------------------------------------------------------------

KEY_PREFIX = "gsetrack"
VERSION_MARKER_KEY = f"{KEY_PREFIX}.schema_version"

DEFAULT_DB_FILENAME = "gsetrack.sqlite3"
BUNDLED_DATASET_RESOURCE = "data/reference_dataset.json"

# ------------------------------------------------------------------
# Record identifiers
# ------------------------------------------------------------------

FAULT_ID_PREFIX = "FLT"
HANDOVER_ID_PREFIX = "HO"
