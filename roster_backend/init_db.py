import sys
from flask_migrate import upgrade
from sqlalchemy.exc import SQLAlchemyError
from roster_backend.app import create_app


def init_database():
    """Apply all schema migrations to the configured database."""
    app = create_app()
    with app.app_context():
        try:
            upgrade()
            app.logger.info('Database schema is up to date')
            return True
        except SQLAlchemyError as exc:
            app.logger.error('Database migration failed: %s', exc)
            return False


def main():
    if init_database():
        return 0
    return 1


if __name__ == '__main__':
    sys.exit(main())
