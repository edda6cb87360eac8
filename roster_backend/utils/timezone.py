import os
from datetime import datetime
from zoneinfo import ZoneInfo

from flask import current_app, has_app_context

DEFAULT_TIMEZONE = 'Asia/Seoul'


def academy_timezone():
    """The app's ACADEMY_TIMEZONE, or the environment outside an app context."""
    if has_app_context():
        name = current_app.config.get('ACADEMY_TIMEZONE')
        if name:
            return ZoneInfo(name)
    return ZoneInfo(os.environ.get('ACADEMY_TIMEZONE', DEFAULT_TIMEZONE))


def get_academy_now():
    """Current time in the academy's configured timezone."""
    return datetime.now(academy_timezone())


def academy_now_naive():
    return get_academy_now().replace(tzinfo=None)


def academy_today():
    return get_academy_now().date()
