"""Flask application serving the current page snapshot."""

from __future__ import annotations

import logging

from flask import Flask, Response

from .publisher import SnapshotHolder

logger = logging.getLogger(__name__)

NOT_FOUND_BODY = "404!"


def create_app(holder: SnapshotHolder) -> Flask:
    """Create a Flask app answering every GET from ``holder``'s snapshot."""
    app = Flask(__name__, static_folder=None)

    @app.route("/", defaults={"path": ""}, methods=["GET"])
    @app.route("/<path:path>", methods=["GET"])
    def serve(path: str) -> Response:
        snapshot = holder.current()
        page = snapshot.get("/" + path)
        if page is None:
            return Response(NOT_FOUND_BODY, status=404)

        response = Response(page.body, content_type=page.content_type)
        response.headers["Content-Encoding"] = "gzip"
        return response

    return app
