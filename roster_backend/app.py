import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path
from flask import Flask, jsonify, request
from werkzeug.middleware.proxy_fix import ProxyFix
from roster_backend.config import Config
from roster_backend.extensions import db, migrate, limiter
from roster_backend.utils.roster_directory import build_roster_directory

BASE_DIR = os.path.dirname(os.path.abspath(__file__))


def configure_logging(app):
    # Handlers live on the package logger only; app.logger propagates to it
    level = app.config.get('LOG_LEVEL', 'INFO')
    package_logger = logging.getLogger('roster_backend')
    package_logger.setLevel(level)
    installed = {handler.get_name(): handler for handler in package_logger.handlers}

    if 'roster-console' not in installed:
        console = logging.StreamHandler()
        console.set_name('roster-console')
        console.setFormatter(logging.Formatter('[%(asctime)s] %(levelname)s in %(module)s: %(message)s'))
        package_logger.addHandler(console)
        installed['roster-console'] = console

    if app.config.get('LOG_TO_FILE', True) and 'roster-file' not in installed:
        log_dir = Path(app.config.get('LOG_DIR', 'logs'))
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(log_dir / 'roster.log', maxBytes=2_000_000, backupCount=5)
        file_handler.set_name('roster-file')
        file_handler.setFormatter(logging.Formatter('%(asctime)s %(levelname)s %(name)s %(funcName)s: %(message)s'))
        package_logger.addHandler(file_handler)
        installed['roster-file'] = file_handler

    for handler in installed.values():
        handler.setLevel(level)
    # Flask adds its default handler only when no ancestor logger has one
    app.logger.setLevel(level)


def create_app(config_object=Config, roster_directory=None):
    app = Flask(__name__)
    app.config.from_object(config_object)
    app.wsgi_app = ProxyFix(app.wsgi_app, x_proto=1, x_host=1)
    configure_logging(app)

    @app.after_request
    def after_request(response):
        allowed_origins = app.config.get('CORS_ALLOWED_ORIGINS', [])
        request_origin = request.headers.get('Origin')
        if request_origin and request_origin in allowed_origins:
            response.headers['Access-Control-Allow-Origin'] = request_origin
            response.headers['Vary'] = 'Origin'
        elif not app.config.get('LOCALHOST_ONLY', True):
            response.headers['Access-Control-Allow-Origin'] = '*'
        response.headers.add('Access-Control-Allow-Headers', 'Content-Type,Authorization')
        response.headers.add('Access-Control-Allow-Methods', 'GET,PUT,POST,OPTIONS')
        return response

    db.init_app(app)
    migrate.init_app(app, db, directory=os.path.join(BASE_DIR, 'migrations'))
    limiter.init_app(app)
    app.extensions['roster_directory'] = roster_directory or build_roster_directory(app.config)

    from roster_backend import models  # noqa: F401  registers tables on the metadata
    from roster_backend.routes.api import api_bp
    from roster_backend.routes.schedules import schedules_bp
    app.register_blueprint(api_bp)
    app.register_blueprint(schedules_bp)

    @app.errorhandler(404)
    def not_found(error):
        return (jsonify({'success': False, 'message': 'Resource not found'}), 404)

    @app.errorhandler(429)
    def rate_limited(error):
        return (jsonify({'success': False, 'message': 'Too many requests'}), 429)

    app.logger.info('Roster backend started (directory: %s)', app.config.get('ROSTER_DIRECTORY_URL'))
    return app


if __name__ == '__main__':
    create_app().run(debug=True)
