"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

GEOFENCE_RADIUS_METERS = 10.0
EARTH_RADIUS_METERS = 6_371_000
LATE_CHECKIN_HOUR = 9
SUNDAY = 6
DEFAULT_NON_WORKING_WEEKDAYS = (SUNDAY,)
MONEY_PLACES = 2
