"""
Application configuration loaded from environment variables.

All values have safe defaults for a standalone single-user deployment.
"""
import os

# Branding
APP_NAME: str = os.environ.get('TASKBOARD_APP_NAME', 'Taskboard')

# Routing
# Set this when Taskboard is mounted at a sub-path, e.g. /apps/taskboard.
# All generated URLs are prefixed with this value. Must NOT have a trailing slash.
BASE_PATH: str = os.environ.get('TASKBOARD_BASE_PATH', '').rstrip('/')

# Storage
DB_PATH: str = os.environ.get('TASKBOARD_DB_PATH', '/data/taskboard.db')

# Sessions
SESSION_COOKIE: str = os.environ.get('TASKBOARD_SESSION_COOKIE', 'taskboard_session')
COOKIE_SECURE: bool = os.environ.get('TASKBOARD_COOKIE_SECURE', '').strip().lower() in {
    '1', 'true', 'yes', 'on',
}
# New sessions are bound to this user; login is handled by the host platform.
DEFAULT_USER_ID: int = max(1, int(os.environ.get('TASKBOARD_DEFAULT_USER_ID', '1')))

# Dates
DATE_FORMAT: str = os.environ.get('TASKBOARD_DATE_FORMAT', '%m/%d/%Y')

# 'forbid' answers 403 on a bad anti-forgery token, 'prompt' re-renders the confirmation view.
CSRF_FAILURE_POLICY: str = os.environ.get('TASKBOARD_CSRF_FAILURE_POLICY', 'forbid').strip().lower()
if CSRF_FAILURE_POLICY not in {'forbid', 'prompt'}:
    CSRF_FAILURE_POLICY = 'forbid'

BODY_LIMIT_BYTES: int = max(1024, int(os.environ.get('TASKBOARD_BODY_LIMIT_BYTES', '262144')))

# Sessions older than this are deleted at startup.
SESSION_MAX_AGE_DAYS: int = max(1, int(os.environ.get('TASKBOARD_SESSION_MAX_AGE_DAYS', '30')))
