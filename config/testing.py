import os

from .config import db_config_from_env, env_flag

SECRET_KEY = "test-secret"

DB_CONFIG = db_config_from_env(default_database="site_payroll_test")

DEBUG = False
TESTING = True

AUTO_INIT_DB = env_flag("AUTO_INIT_DB", "0")
AUTO_SEED_DB = env_flag("AUTO_SEED_DB", "0")

LOG_LEVEL = os.getenv("LOG_LEVEL", "WARNING")
LOG_JSON = True

GEOFENCE_RADIUS_METERS = 10.0
NON_WORKING_WEEKDAYS = (6,)
LATE_CHECKIN_HOUR = 9
