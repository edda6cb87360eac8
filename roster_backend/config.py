from dotenv import load_dotenv
import os

load_dotenv()


def _env_bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_csv(name, default_csv):
    value = os.environ.get(name, default_csv)
    return [item.strip() for item in value.split(",") if item.strip()]


def _database_uri():
    explicit = os.environ.get('DATABASE_URL')
    if explicit:
        return explicit
    db_user = os.environ.get('DB_USER', 'postgres')
    db_password = os.environ.get('DB_PASSWORD', 'password')
    db_host = os.environ.get('DB_HOST', 'localhost')
    db_port = os.environ.get('DB_PORT', '5432')
    db_name = os.environ.get('DB_NAME', 'academy_roster')
    return f'postgresql://{db_user}:{db_password}@{db_host}:{db_port}/{db_name}'


class Config:
    LOCALHOST_ONLY = _env_bool("ROSTER_LOCALHOST_ONLY", True)
    SECRET_KEY = os.environ.get('SESSION_SECRET', 'roster-local-secret')

    # Database configuration
    SQLALCHEMY_DATABASE_URI = _database_uri()
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Flask-Limiter storage, in-memory unless REDIS_URL is set
    RATELIMIT_STORAGE_URI = os.environ.get('REDIS_URL', 'memory://')
    RATELIMIT_ENABLED = _env_bool('RATELIMIT_ENABLED', True)
    API_RATE_LIMIT = os.environ.get('API_RATE_LIMIT', '100 per minute')
    RATELIMIT_DEFAULT = API_RATE_LIMIT
    CORS_ALLOWED_ORIGINS = _env_csv(
        'ROSTER_CORS_ALLOWED_ORIGINS',
        'http://localhost:3000,http://127.0.0.1:3000'
    )

    # Logging
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_DIR = os.environ.get('LOG_DIR', os.path.join(os.getcwd(), 'logs'))
    LOG_TO_FILE = _env_bool('LOG_TO_FILE', True)

    # Roster directory (student / instructor listing service)
    ROSTER_DIRECTORY_URL = os.environ.get('ROSTER_DIRECTORY_URL', 'http://localhost:8000/api')
    ROSTER_DIRECTORY_API_KEY = os.environ.get('ROSTER_DIRECTORY_API_KEY')
    ROSTER_DIRECTORY_TIMEOUT = float(os.environ.get('ROSTER_DIRECTORY_TIMEOUT', '10'))

    # Roster policies
    ROSTER_EXCLUDED_STATUSES = _env_csv('ROSTER_EXCLUDED_STATUSES', 'paused,withdrawn,graduated')
    ROSTER_TRIAL_WEEKDAY_FALLBACK = _env_bool('ROSTER_TRIAL_WEEKDAY_FALLBACK', True)

    ACADEMY_TIMEZONE = os.environ.get('ACADEMY_TIMEZONE', 'Asia/Seoul')

    VERSION = '1.0.0'
    DEBUG = _env_bool('FLASK_DEBUG', False)
    TESTING = False


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    RATELIMIT_ENABLED = False
    LOG_LEVEL = 'WARNING'
    LOG_TO_FILE = False
    ROSTER_DIRECTORY_URL = 'http://directory.test/api'
    ROSTER_EXCLUDED_STATUSES = ['paused', 'withdrawn', 'graduated']
    ROSTER_TRIAL_WEEKDAY_FALLBACK = True
