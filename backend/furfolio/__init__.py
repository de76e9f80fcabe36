from flask import Flask
from werkzeug.exceptions import HTTPException
from flask_jwt_extended import JWTManager
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool
from sqlalchemy.orm import sessionmaker, scoped_session
from dotenv import load_dotenv
from typing import Optional, Dict, Any
import os

from furfolio.config.settings import env_flag

load_dotenv()

db_engine = None
SessionLocal = None
jwt = JWTManager()


def _default_config() -> Dict[str, Any]:
    return {
        'JWT_SECRET_KEY': os.getenv('JWT_SECRET_KEY', 'dev-secret'),
        'DATABASE_URL': os.getenv('DATABASE_URL', 'sqlite:///dev.db'),
        'ALLOW_SUPERUSER_OVERRIDE': env_flag('FURFOLIO_ALLOW_SUPERUSER_OVERRIDE'),
        'PERSIST_AUDIT': env_flag('FURFOLIO_PERSIST_AUDIT', default=True),
    }


def _engine_for(db_url: str):
    if not db_url.endswith(':memory:'):
        return create_engine(db_url, echo=False, future=True)
    # every session must see the same in-memory database
    return create_engine(
        db_url,
        echo=False,
        future=True,
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )


def _error_body(status: int, title: str, detail):
    return {'error': {'status': status, 'title': title, 'detail': detail}}, status


def create_app(config: Optional[Dict[str, Any]] = None):
    global db_engine, SessionLocal
    app = Flask(__name__)
    app.config.update(_default_config())
    app.config.update(config or {})

    db_engine = _engine_for(app.config['DATABASE_URL'])
    SessionLocal = scoped_session(sessionmaker(bind=db_engine, expire_on_commit=False, autoflush=False))

    jwt.init_app(app)

    from .routes.access import access_bp
    from .routes.integrity import integrity_bp
    app.register_blueprint(access_bp, url_prefix='/access')
    app.register_blueprint(integrity_bp, url_prefix='/integrity')

    @app.get('/healthz')
    def health():
        return {'status': 'ok'}

    @app.errorhandler(Exception)
    def handle_errors(e):  # type: ignore
        if isinstance(e, HTTPException):
            return _error_body(e.code, e.name, e.description)
        app.logger.exception('Unhandled exception')
        return _error_body(500, 'Internal Server Error', 'Unexpected error')

    return app


def get_db():
    return SessionLocal()
