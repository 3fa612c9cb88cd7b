"""Application constants."""

DATASET_STAGES = (
    "categorize",
    "crime",
    "service-requests",
    "development",
    "food-inspections",
)
STAGES = (*DATASET_STAGES, "score")
EXIT_SUCCESS = 0
EXIT_PARTIAL = 10
EXIT_HARD_FAIL = 20
JSON_LOG_FIELDS = (
    "timestamp",
    "run_id",
    "stage",
    "dataset",
    "event",
    "status",
    "duration_ms",
    "rows_in",
    "rows_out",
    "error_code",
    "message",
)
# Breakdown labels are bilingual ("Pothole | Nid-de-poule"); only the first part is published.
SECONDARY_LANGUAGE_SEPARATOR = " | "
PER_POPULATION = 1000
