from __future__ import annotations

import atexit
import importlib
import logging
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from .config import get_settings_module
from .container import Container, build_container
from .logging_config import configure_logging
from .presence.controller import register as register_presence
from .settings import load_settings

logger = logging.getLogger(__name__)


def create_app(container: Optional[Container] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    pipeline_settings = load_settings(settings)
    configure_logging(pipeline_settings.log_level, pipeline_settings.log_json)

    broker = pipeline_settings.broker
    logger.info(
        "worksense starting: settings=%s broker=%s://%s:%s topic=%s",
        settings_module, broker.transport, broker.host, broker.port, pipeline_settings.presence_topic,
    )

    if container is None:
        container = build_container(pipeline_settings)
    container.start()
    atexit.register(container.shutdown)

    app.extensions["worksense"] = container
    register_presence(app, container)

    return app
