import os

from .config import db_config_from_env, env_flag, env_weekdays

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = db_config_from_env()

DEBUG = False

AUTO_INIT_DB = env_flag("AUTO_INIT_DB", "0")
AUTO_SEED_DB = env_flag("AUTO_SEED_DB", "0")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_JSON = env_flag("LOG_JSON", "1")

GEOFENCE_RADIUS_METERS = float(os.getenv("GEOFENCE_RADIUS_METERS", "10"))
NON_WORKING_WEEKDAYS = env_weekdays("NON_WORKING_WEEKDAYS")
LATE_CHECKIN_HOUR = int(os.getenv("LATE_CHECKIN_HOUR", "9"))
