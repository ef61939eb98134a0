from __future__ import annotations

import importlib
import logging
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from .config import get_settings_module
from .container import Container, build_container
from .database.bootstrap import apply_schema, ensure_demo_users
from .auth.web import install as install_session_gate
from .attendance.controller import register as register_attendance
from .users.controller import register as register_users

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


def create_app(container: Optional[Container] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    configure_logging(getattr(settings, "LOG_LEVEL", "DEBUG" if app.config["DEBUG"] else "INFO"))

    store_backend = getattr(settings, "STORE_BACKEND", "mysql")
    db_config = getattr(settings, "DB_CONFIG", {})

    if container is None:
        logger.info("settings=%s store=%s", settings_module, store_backend)

        if store_backend == "mysql" and getattr(settings, "AUTO_INIT_DB", False):
            apply_schema(db_config)
        if store_backend == "mysql" and getattr(settings, "AUTO_SEED_DB", False):
            ensure_demo_users(db_config)

        container = build_container(
            store_backend=store_backend,
            db_config=db_config,
            rest_config=getattr(settings, "REST_CONFIG", None),
        )

    install_session_gate(app, container.users_repo)
    register_users(app, container)
    register_attendance(app, container)

    return app
