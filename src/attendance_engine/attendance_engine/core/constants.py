"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DESCRIPTOR_LENGTH = 128
EARTH_RADIUS_METERS = 6_371_000

DEFAULT_FACE_THRESHOLD = 0.6
DEFAULT_LATE_THRESHOLD_MINUTES = 15
DEFAULT_HALF_DAY_HOURS = 4.0
DEFAULT_FULL_DAY_HOURS = 8.0
DEFAULT_OVERTIME_THRESHOLD_MINUTES = 0
DEFAULT_LOCK_DAY = 5
DEFAULT_OFFICE_RADIUS_METERS = 800

DEFAULT_DB_TIMEOUT_SECONDS = 5
