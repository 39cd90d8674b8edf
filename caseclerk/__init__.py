import logging
import os
import time

from flask import Flask, current_app, g, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_login import LoginManager, current_user
from flask_migrate import Migrate

from .models import db

def _api_limit():
    return current_app.config['RATELIMIT_API']


# Initialize extensions
migrate = Migrate()
login_manager = LoginManager()
# Resolved per request from the active app's config
limiter = Limiter(key_func=get_remote_address, default_limits=[_api_limit])
cors = CORS()


def _configure_logging(app):
    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s',
    )
    app.logger.setLevel(level)


def _register_request_logger(app):
    @app.before_request
    def _start_timer():
        g.request_started = time.perf_counter()

    @app.after_request
    def _log_request(response):
        started = g.pop('request_started', None)
        duration_ms = (time.perf_counter() - started) * 1000 if started is not None else 0.0
        line = f"{request.method} {request.full_path.rstrip('?')} {response.status_code} {duration_ms:.1f}ms"
        if response.status_code >= 400:
            user_id = current_user.get_id() if current_user.is_authenticated else 'anonymous'
            app.logger.warning(f"{line} user={user_id}")
        else:
            app.logger.info(line)
        return response


def create_app(config_class=None):
    # Create and configure the app
    app = Flask(__name__)

    from .config import get_config
    app.config.from_object(config_class or get_config())

    _configure_logging(app)
    os.makedirs(app.config['UPLOAD_FOLDER'], exist_ok=True)

    # Initialize extensions with app
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    limiter.init_app(app)
    cors.init_app(app, resources={r'/api/*': {'origins': app.config['CORS_ORIGINS']}})

    from . import auth  # noqa: F401  registers the request loader

    # Register blueprints
    from .routes import register_blueprints
    register_blueprints(app)

    # Register error handlers
    from .errors import bp as errors_bp
    app.register_blueprint(errors_bp)

    _register_request_logger(app)

    from .cli import register_commands
    register_commands(app)

    with app.app_context():
        db.create_all()
        if app.config.get('SEED_DEMO_DATA'):
            from .seed_data import seed_demo_data
            seed_demo_data()

    from .services.scheduler import start_scheduler
    start_scheduler(app)

    return app
