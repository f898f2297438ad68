import os

from .streams import STREAMS  # noqa: F401

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "cohort_attendance_test"),
}

DEBUG = False
TESTING = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "WARNING")

NOTIFICATION_BATCH_SIZE = int(os.getenv("NOTIFICATION_BATCH_SIZE", "10"))
NOTIFICATION_BATCH_DELAY_SECONDS = 0.0
NOTIFICATION_CLAIM_TIMEOUT_SECONDS = 60.0

ALLOW_PARTITION_REPROVISION = True

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
