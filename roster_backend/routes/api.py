from flask import Blueprint, jsonify, current_app
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from roster_backend.extensions import db, limiter
from roster_backend.utils.timezone import academy_now_naive
api_bp = Blueprint('api', __name__, url_prefix='/api')


@api_bp.route('/health', methods=['GET'])
@limiter.exempt
def health_check():
    """Liveness probe that also verifies the database connection."""
    try:
        db.session.execute(text('SELECT 1'))
        database_ok = True
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.warning('Health check could not reach the database: %s', exc)
        database_ok = False
    body = {
        'status': 'healthy' if database_ok else 'degraded',
        'database': database_ok,
        'version': current_app.config.get('VERSION'),
        'timestamp': academy_now_naive().isoformat(),
    }
    return (jsonify(body), 200 if database_ok else 503)
