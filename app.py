from __future__ import annotations
import os
from importlib import import_module
from typing import Any, Mapping, Optional

from flask import Flask
from sqlalchemy import inspect

from clock import SystemClock
from config import BookingConfig, config_map
from extensions import configure_sqlite, db, migrate


def _seed_from_config(app):
    if not app.config.get("SEED_DEMO_DATA"):
        return
    with app.app_context():
        # таблицы может ещё не быть (до alembic upgrade)
        if not inspect(db.engine).has_table("ingredients"):
            return
        from seed import seed_catalog  # локальный импорт, чтобы избежать циклов
        seed_catalog()


def register_blueprints(app: Flask) -> None:
    # Жёстко импортируем модуль с маршрутами core перед взятием bp
    import_module("blueprints.core.routes")
    from blueprints.core import bp as core_bp
    from blueprints.orders.routes import api_bp as orders_api_bp
    from blueprints.planning.routes import api_bp as planning_api_bp

    app.register_blueprint(core_bp, url_prefix="/api/v1")
    app.register_blueprint(orders_api_bp, url_prefix="/api/v1")
    app.register_blueprint(planning_api_bp, url_prefix="/api/v1")


def create_app(config_name: str | None = None, overrides: Optional[Mapping[str, Any]] = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    cfg_name = config_name or os.getenv("FLASK_CONFIG", "default")
    app.config.from_object(config_map[cfg_name])
    if overrides:
        app.config.update(overrides)

    # падаем сразу, а не на первом заказе
    app.extensions["booking"] = BookingConfig.from_mapping(app.config)
    app.extensions["clock"] = SystemClock(app.extensions["booking"].timezone)

    try:
        os.makedirs(app.instance_path, exist_ok=True)
    except OSError:
        pass
    db.init_app(app)
    migrate.init_app(app, db)
    with app.app_context():
        configure_sqlite(db.engine)
    register_blueprints(app)
    _seed_from_config(app)
    return app
