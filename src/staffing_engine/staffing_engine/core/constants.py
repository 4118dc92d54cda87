"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

MAX_TIME_ENTRIES = 3
DEFAULT_REGULAR_HOURS_PER_DAY = 8
DEFAULT_MIN_WORK_MINUTES = 0

# assigned < LOW_FULFILLMENT_RATIO * required => Low band
LOW_FULFILLMENT_RATIO = 0.7

CREW_CHIEF_ROLE_CODE = "CC"
