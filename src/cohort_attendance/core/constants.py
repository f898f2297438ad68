"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_FINAL_PERIOD = 6
DEFAULT_SUBJECT_CREDITS = 4

# MySQL identifier limit; longer partition tables are shortened with a hash.
MAX_TABLE_NAME_LENGTH = 64

DEFAULT_NOTIFICATION_BATCH_SIZE = 10
DEFAULT_NOTIFICATION_BATCH_DELAY_SECONDS = 1.0
DEFAULT_CONSOLIDATION_WORKERS = 8
DEFAULT_HISTORY_LIMIT = 10

# A pending dispatch claim older than this is treated as abandoned
DEFAULT_DISPATCH_CLAIM_TIMEOUT_SECONDS = 900

PROMOTION_LOCK_TIMEOUT_SECONDS = 10

MIN_PHONE_DIGITS = 10
MAX_PHONE_DIGITS = 15
DEFAULT_COUNTRY_CODE = "91"
