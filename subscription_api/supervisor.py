"""
Process supervision for the HTTP server.

The supervisor owns the server lifecycle (start, drain, stop) and is the single
place fatal faults are routed to:

- an exception escaping the main thread terminates the process immediately;
- an exception escaping any other thread stops intake, drains in-flight
  requests for at most the grace period, then exits with status 1;
- SIGTERM / SIGINT drain the same way, close the persistence connection and
  exit with status 0.
"""

from __future__ import annotations

import logging
import os
import signal
import sys
import threading
from types import FrameType, TracebackType
from typing import Any, Callable, Iterable

from flask import Flask
from werkzeug.serving import make_server

logger = logging.getLogger(__name__)


class InFlightTracker:
    """WSGI wrapper counting requests that are currently being handled."""

    def __init__(self, wsgi_app: Callable[..., Iterable[bytes]]) -> None:
        self._wsgi_app = wsgi_app
        self._active = 0
        self._condition = threading.Condition()

    def __call__(self, environ: dict[str, Any], start_response: Callable[..., Any]):
        with self._condition:
            self._active += 1
        try:
            return self._wsgi_app(environ, start_response)
        finally:
            with self._condition:
                self._active -= 1
                self._condition.notify_all()

    @property
    def active(self) -> int:
        with self._condition:
            return self._active

    def wait_idle(self, timeout: float) -> bool:
        with self._condition:
            return self._condition.wait_for(lambda: self._active == 0, timeout=timeout)


class ServerSupervisor:
    def __init__(
        self,
        app: Flask,
        *,
        host: str,
        port: int,
        grace_period_seconds: float = 10.0,
        close_persistence: Callable[[], None] | None = None,
        server_factory: Callable[..., Any] = make_server,
        exit_process: Callable[[int], Any] = sys.exit,
        terminate_now: Callable[[int], Any] = os._exit,
    ) -> None:
        self.app = app
        self.host = host
        self.port = port
        self.grace_period_seconds = grace_period_seconds
        self._close_persistence = close_persistence
        self._server_factory = server_factory
        self._exit_process = exit_process
        self._terminate_now = terminate_now

        self.tracker = InFlightTracker(app.wsgi_app)
        app.wsgi_app = self.tracker  # type: ignore[method-assign]

        self._server: Any = None
        self._serve_thread: threading.Thread | None = None
        self._stop_requested = threading.Event()
        self._lock = threading.Lock()
        self.shutdown_reason: str | None = None
        self.exit_code = 0
        self._close_persistence_on_exit = False

    @property
    def stop_requested(self) -> bool:
        return self._stop_requested.is_set()

    def install(self) -> None:
        sys.excepthook = self.handle_uncaught_exception
        threading.excepthook = self.handle_thread_exception
        signal.signal(signal.SIGTERM, self.handle_signal)
        signal.signal(signal.SIGINT, self.handle_signal)

    def start(self) -> None:
        self._server = self._server_factory(
            self.host, self.port, self.app, threaded=True
        )
        self._serve_thread = threading.Thread(
            target=self._server.serve_forever,
            name="http-server",
            daemon=True,
        )
        self._serve_thread.start()
        logger.info("server_started host=%s port=%s", self.host, self.port)

    def request_shutdown(
        self, reason: str, *, exit_code: int, close_persistence: bool
    ) -> None:
        with self._lock:
            if self._stop_requested.is_set():
                return
            self.shutdown_reason = reason
            self.exit_code = exit_code
            self._close_persistence_on_exit = close_persistence
            self._stop_requested.set()
        logger.info("shutdown_requested reason=%s exit_code=%s", reason, exit_code)

    def wait(self, poll_interval: float = 0.5) -> None:
        while not self._stop_requested.wait(poll_interval):
            continue

    def drain(self) -> bool:
        """Stop intake, wait for in-flight requests, release resources.

        Returns ``False`` when the grace period elapsed with requests still
        in flight.
        """
        if self._server is not None:
            self._server.shutdown()

        drained = self.tracker.wait_idle(self.grace_period_seconds)
        if not drained:
            logger.warning(
                "shutdown_grace_period_elapsed in_flight=%s grace_seconds=%s",
                self.tracker.active,
                self.grace_period_seconds,
            )

        if self._close_persistence_on_exit and self._close_persistence is not None:
            try:
                self._close_persistence()
                logger.info("persistence_connection_closed")
            except Exception:
                logger.exception("persistence_close_failed")

        if self._server is not None:
            self._server.server_close()
        logger.info("server_stopped reason=%s", self.shutdown_reason)
        return drained

    def run(self) -> Any:
        self.install()
        self.start()
        self.wait()
        self.drain()
        return self._exit_process(self.exit_code)

    def handle_uncaught_exception(
        self,
        exc_type: type[BaseException],
        exc_value: BaseException,
        exc_traceback: TracebackType | None,
    ) -> None:
        logger.critical(
            "uncaught_exception terminating process",
            exc_info=(exc_type, exc_value, exc_traceback),
        )
        self._terminate_now(1)

    def handle_thread_exception(self, args: threading.ExceptHookArgs) -> None:
        if args.exc_type is SystemExit:
            return
        thread_name = args.thread.name if args.thread is not None else "unknown"
        logger.critical(
            "unhandled_thread_exception thread=%s",
            thread_name,
            exc_info=(args.exc_type, args.exc_value, args.exc_traceback),
        )
        self.request_shutdown(
            f"unhandled_thread_exception:{thread_name}",
            exit_code=1,
            close_persistence=False,
        )

    def handle_signal(self, signum: int, _frame: FrameType | None) -> None:
        self.request_shutdown(
            f"signal:{signal.Signals(signum).name}",
            exit_code=0,
            close_persistence=True,
        )
