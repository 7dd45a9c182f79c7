from flask import Flask
from werkzeug.exceptions import HTTPException
from flask_jwt_extended import JWTManager
from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool
from sqlalchemy.orm import sessionmaker, scoped_session
from dotenv import load_dotenv
from typing import Optional, Dict, Any
import logging

load_dotenv()

db_engine = None
SessionLocal = None
jwt = JWTManager()


def create_app(config: Optional[Dict[str, Any]] = None):
    global db_engine, SessionLocal
    from .config.settings import load_settings

    app = Flask(__name__)
    app.config.update(load_settings())

    if config:
        # allow tests or callers to override default config values
        app.config.update(config)

    level = logging.getLevelName(str(app.config.get('LOG_LEVEL', 'INFO')).upper())
    if isinstance(level, int):
        app.logger.setLevel(level)
        logging.getLogger('vendorhub').setLevel(level)

    # Database
    db_url = app.config['DATABASE_URL']
    if db_url.endswith(':memory:'):
        # Ensure a single shared in-memory SQLite database across all sessions
        db_engine = create_engine(
            db_url,
            echo=False,
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        db_engine = create_engine(db_url, echo=False, future=True)
    SessionLocal = scoped_session(sessionmaker(bind=db_engine, expire_on_commit=False, autoflush=False))

    jwt.init_app(app)

    from .routes.auth import auth_bp
    from .routes.vendors import vendors_bp
    from .routes.roles import roles_bp
    from .routes.permissions import perms_bp
    from .routes.delegations import delegations_bp
    app.register_blueprint(auth_bp, url_prefix='/auth')
    app.register_blueprint(vendors_bp, url_prefix='/vendors')
    app.register_blueprint(roles_bp, url_prefix='/roles')
    app.register_blueprint(perms_bp, url_prefix='/permissions')
    app.register_blueprint(delegations_bp, url_prefix='/delegations')

    @app.route('/healthz')
    def health():
        return {'status': 'ok'}

    # Unified error handler producing standardized JSON shape
    @app.errorhandler(Exception)
    def handle_errors(e):  # type: ignore
        from .errors import DomainError
        if isinstance(e, HTTPException):
            payload = {
                'error': {
                    'status': e.code,
                    'title': e.name,
                    'detail': e.description,
                }
            }
            if isinstance(e, DomainError):
                payload['error']['kind'] = e.kind
            return payload, e.code
        if isinstance(e, SQLAlchemyError):
            SessionLocal.rollback()
            app.logger.exception('Persistence failure')
            return {
                'error': {
                    'status': 500,
                    'title': 'Persistence Error',
                    'detail': 'Storage operation failed'
                }
            }, 500
        # Unhandled exception
        app.logger.exception('Unhandled exception')
        return {
            'error': {
                'status': 500,
                'title': 'Internal Server Error',
                'detail': 'Unexpected error'
            }
        }, 500

    return app


def get_db():
    return SessionLocal()
