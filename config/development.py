import os

from .streams import STREAMS  # noqa: F401

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "cohort_attendance"),
}

DEBUG = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

# Guardian messages go out in batches with a pause in between
NOTIFICATION_BATCH_SIZE = int(os.getenv("NOTIFICATION_BATCH_SIZE", "10"))
NOTIFICATION_BATCH_DELAY_SECONDS = float(os.getenv("NOTIFICATION_BATCH_DELAY_SECONDS", "1.0"))
NOTIFICATION_CLAIM_TIMEOUT_SECONDS = float(os.getenv("NOTIFICATION_CLAIM_TIMEOUT_SECONDS", "900"))

# Dropping and recreating a partition table wipes its rows
ALLOW_PARTITION_REPROVISION = bool(int(os.getenv("ALLOW_PARTITION_REPROVISION", "1")))

# If enabled, schema.sql is applied on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
