"""HTTP server for health checks and metrics."""

from __future__ import annotations

import logging
import threading
from socketserver import ThreadingMixIn
from wsgiref.simple_server import WSGIRequestHandler, WSGIServer, make_server

from .logger import LoggerConfig, new_production_logger

DEFAULT_PORT = 8080


class _ThreadingWSGIServer(ThreadingMixIn, WSGIServer):
    daemon_threads = True


class _QuietHandler(WSGIRequestHandler):
    timeout = 10

    def log_message(self, format, *args):
        logging.getLogger(__name__).debug(format % args)


def _ok(environ, start_response):
    start_response("200 OK", [("Content-Length", "0")])
    return [b""]


class Server:
    """Serves ``/healthz``, ``/readyz``, ``/`` and extra WSGI handlers."""

    def __init__(self, logger=None, port=DEFAULT_PORT):
        self.port = port
        self.logger = logger if logger is not None else new_production_logger(LoggerConfig())
        self.started = threading.Event()
        self.bound_port = None
        self.logger.debug("server initialized", extra={"port": self.port})

    def build_app(self, handlers=None):
        """Return a WSGI app routing paths the way a Go ServeMux would."""
        routes = {"/healthz": _ok, "/readyz": _ok, "/": _ok}
        for path, handler in (handlers or {}).items():
            if path in routes and path not in ("/healthz", "/readyz", "/"):
                raise ValueError(f"multiple registrations for {path}")
            if path in ("/healthz", "/readyz", "/"):
                raise ValueError(f"multiple registrations for {path}")
            routes[path] = handler
            self.logger.info("registered handler", extra={"path": path})

        subtrees = sorted((p for p in routes if p.endswith("/")), key=len, reverse=True)

        def app(environ, start_response):
            path = environ.get("PATH_INFO") or "/"
            handler = routes.get(path)
            if handler is None:
                handler = next(routes[p] for p in subtrees if path.startswith(p))
            return handler(environ, start_response)

        return app

    def serve(self, stop_event, handlers=None):
        """Serve until ``stop_event`` is set; bind failures are logged."""
        app = self.build_app(handlers)
        try:
            httpd = make_server(
                "",
                self.port,
                app,
                server_class=_ThreadingWSGIServer,
                handler_class=_QuietHandler,
            )
        except OSError as exc:
            self.logger.error("failed to start metrics server", extra={"err": str(exc)})
            return

        self.bound_port = httpd.server_port
        self.logger.info("server starting", extra={"port": self.port})

        def shutdown_on_stop():
            stop_event.wait()
            self.logger.info("server shutdown initiated")
            httpd.shutdown()
            self.logger.info("server shutdown completed")

        threading.Thread(target=shutdown_on_stop, daemon=True).start()
        self.started.set()
        try:
            httpd.serve_forever(poll_interval=0.2)
        finally:
            httpd.server_close()