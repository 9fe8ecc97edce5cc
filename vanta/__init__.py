"""
VANTA on-chain intelligence backend.

``create_app`` builds the Flask application: request/response logging,
a permissive CORS header for the browser client, and the analysis and
status blueprints.
"""
from flask import Flask, request

from .config.settings import Settings, settings as default_settings


def create_app(config=None) -> Flask:
    """App factory.

    ``config`` may be a ``Settings`` instance, a dict of setting overrides,
    or None to read the environment.
    """
    if isinstance(config, dict):
        cfg = Settings(**config)
    elif isinstance(config, Settings):
        cfg = config
    else:
        cfg = default_settings

    app = Flask(__name__)
    app.config.from_mapping(cfg.as_dict())
    app.extensions['vanta'] = cfg

    @app.before_request
    def log_request_info():
        app.logger.info(
            "Request %s %s | json=%s",
            request.method,
            request.path,
            (request.get_json(silent=True) if request.is_json else None),
        )

    @app.after_request
    def add_cors_and_log(response):
        response.headers['Access-Control-Allow-Origin'] = cfg.CORS_ALLOW_ORIGIN
        response.headers['Access-Control-Allow-Headers'] = 'Content-Type'
        response.headers['Access-Control-Allow-Methods'] = 'GET, POST, OPTIONS'
        app.logger.info(
            "Response %s %s | status=%s | length=%s",
            request.method,
            request.path,
            response.status,
            response.content_length,
        )
        return response

    from .routes.analysis import bp as analysis_bp
    from .routes.status import bp as status_bp

    app.register_blueprint(status_bp)
    app.register_blueprint(analysis_bp)
    return app


__all__ = ['create_app']
