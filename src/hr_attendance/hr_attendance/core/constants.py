"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

from datetime import time

WORKDAY_START = time(9, 0)
STANDARD_WORKDAY_HOURS = 8
HALF_DAY_HOURS = 4

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 200

MYSQL_DUPLICATE_KEY_ERRNO = 1062
MYSQL_FOREIGN_KEY_ERRNO = 1452
