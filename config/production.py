import os

from .streams import STREAMS  # noqa: F401

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "cohort_attendance"),
}

DEBUG = False
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

NOTIFICATION_BATCH_SIZE = int(os.getenv("NOTIFICATION_BATCH_SIZE", "10"))
NOTIFICATION_BATCH_DELAY_SECONDS = float(os.getenv("NOTIFICATION_BATCH_DELAY_SECONDS", "1.0"))
NOTIFICATION_CLAIM_TIMEOUT_SECONDS = float(os.getenv("NOTIFICATION_CLAIM_TIMEOUT_SECONDS", "900"))

ALLOW_PARTITION_REPROVISION = bool(int(os.getenv("ALLOW_PARTITION_REPROVISION", "0")))

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
