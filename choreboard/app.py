"""ChoreBoard Flask application - Main entry point."""

import os
import sys
import logging
from pathlib import Path
from flask import Flask, jsonify, g
from flask_migrate import Migrate
from sqlalchemy import text
from werkzeug.middleware.proxy_fix import ProxyFix

# Configure logging for the entire application
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    stream=sys.stdout
)

from choreboard.models import db  # noqa: E402

# Initialize Flask-Migrate
migrate = Migrate()


def create_app(config_name=None):
    """Application factory pattern for Flask app creation."""
    app = Flask(__name__)

    # Load configuration
    if config_name is None:
        # Production when a /data volume is mounted, development otherwise
        if os.path.exists('/data'):
            config_name = os.environ.get('FLASK_ENV', 'production')
        else:
            config_name = os.environ.get('FLASK_ENV', 'development')

    from choreboard.config import config
    app.config.from_object(config[config_name])

    # Ensure data directory exists (skip for in-memory database)
    if app.config['SQLALCHEMY_DATABASE_URI'] != "sqlite:///:memory:":
        data_dir = Path(app.config['DATA_DIR'])
        data_dir.mkdir(parents=True, exist_ok=True)

    # Initialize extensions with app
    db.init_app(app)
    migrate.init_app(app, db)

    # The trusted auth proxy sets X-Forwarded-* and X-Remote-User
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)

    # Register middleware
    register_middleware(app)

    # Register routes
    register_routes(app)

    # Initialize background scheduler
    from choreboard.scheduler import init_scheduler
    init_scheduler(app)

    return app


def register_middleware(app):
    """Register middleware for authentication and request processing."""
    from choreboard.auth import load_remote_user

    app.before_request(load_remote_user)


def register_routes(app):
    """Register all application routes."""

    # Register blueprints
    from choreboard.routes import assignments_bp, completions_bp, points_bp, photos_bp

    app.register_blueprint(assignments_bp)
    app.register_blueprint(completions_bp)
    app.register_blueprint(points_bp)
    app.register_blueprint(photos_bp)

    @app.route('/health')
    def health():
        """Health check endpoint for monitoring."""
        from choreboard.scheduler import get_job_status

        try:
            # Check database connectivity
            db.session.execute(text('SELECT 1'))
            db_status = 'healthy'
        except Exception as e:
            db_status = f'unhealthy: {str(e)}'

        return jsonify({
            'status': 'healthy' if db_status == 'healthy' else 'degraded',
            'database': db_status,
            'jobs': get_job_status(),
            'remote_user': getattr(g, 'remote_user', None)
        })


if __name__ == '__main__':
    # Run development server
    create_app().run(host='0.0.0.0', port=8099, debug=True)
