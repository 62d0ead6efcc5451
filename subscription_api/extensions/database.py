from __future__ import annotations

import logging
import threading
from typing import Any

from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

db = SQLAlchemy()

STATE_CONNECTED = "connected"
STATE_DISCONNECTED = "disconnected"
STATE_ERROR = "error"

logger = logging.getLogger(__name__)


class PersistenceMonitor:
    """Tracks connection lifecycle events emitted by the SQLAlchemy engine."""

    def __init__(self) -> None:
        self._state = STATE_DISCONNECTED
        self._lock = threading.Lock()

    @property
    def state(self) -> str:
        with self._lock:
            return self._state

    def _transition(self, new_state: str) -> None:
        with self._lock:
            previous = self._state
            self._state = new_state
        if previous != new_state:
            log = logger.error if new_state == STATE_ERROR else logger.info
            log("persistence_state_changed from=%s to=%s", previous, new_state)

    def on_connect(self, *_args: Any) -> None:
        self._transition(STATE_CONNECTED)

    def on_error(self, context: Any) -> None:
        if getattr(context, "is_disconnect", False):
            logger.warning("persistence_disconnect_detected")
            self._transition(STATE_DISCONNECTED)
            return
        self._transition(STATE_ERROR)

    def on_dispose(self, *_args: Any) -> None:
        self._transition(STATE_DISCONNECTED)

    def attach(self, engine: Engine) -> None:
        event.listen(engine, "connect", self.on_connect)
        event.listen(engine, "handle_error", self.on_error)
        event.listen(engine, "engine_disposed", self.on_dispose)

    def ping(self) -> bool:
        try:
            with db.engine.connect() as connection:
                connection.execute(text("SELECT 1"))
        except SQLAlchemyError:
            return False
        self._transition(STATE_CONNECTED)
        return True


def get_persistence_monitor(app: Flask) -> PersistenceMonitor:
    monitor = app.extensions.get("persistence_monitor")
    if not isinstance(monitor, PersistenceMonitor):
        raise RuntimeError("Persistence monitor is not initialized.")
    return monitor


def init_database(app: Flask) -> PersistenceMonitor:
    db.init_app(app)
    monitor = PersistenceMonitor()
    app.extensions["persistence_monitor"] = monitor

    with app.app_context():
        monitor.attach(db.engine)
        try:
            db.create_all()
        except SQLAlchemyError:
            app.logger.exception("persistence_bootstrap_failed")

    return monitor


def close_database(app: Flask) -> None:
    with app.app_context():
        db.session.remove()
        db.engine.dispose()
