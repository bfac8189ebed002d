# resibox/api/server.py
"""
RESIBOX_PROJECT - API Server
Flask API server exposing tracking numbers, notifications and lock state,
with Socket.IO pushes of every state snapshot.
"""

import logging
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, Optional, Tuple

from flask import Flask, Response, jsonify, request
from flask_socketio import SocketIO

from resibox.core.exceptions import StoreError, ValidationError
from resibox.core.state import TrackerSnapshot, TrackerState
from resibox.services.hardware_manager import HardwareManager
from resibox.services.notifier import Notification, NotificationCenter
from resibox.services.submission import SubmissionService


class APIServer:
    """Main API Server class handling all HTTP endpoints."""

    def __init__(
        self,
        state: TrackerState,
        submission: SubmissionService,
        notifier: NotificationCenter,
        hardware_manager: Optional[HardwareManager] = None,
        submit_timeout_s: float = 15.0,
    ) -> None:
        """Initialize server components."""
        self.state = state
        self.submission = submission
        self.notifier = notifier
        self.hardware_manager = hardware_manager
        self.submit_timeout_s = submit_timeout_s
        self.logger = logging.getLogger(__name__)

        self.app: Optional[Flask] = None
        self.socketio: Optional[SocketIO] = None
        self._unsubscribe = None
        self._remove_sink = None

    def create_app(self) -> Flask:
        """Create and configure the Flask application and its Socket.IO channel."""
        app = Flask(__name__)
        self.socketio = SocketIO(app, cors_allowed_origins="*", async_mode="threading")
        self._register_routes(app)
        self._register_error_handlers(app)
        self._register_push_channel()
        self.app = app
        return app

    def _register_push_channel(self) -> None:
        self._detach_push_channel()
        self._unsubscribe = self.state.subscribe(self._emit_snapshot)
        self._remove_sink = self.notifier.add_sink(self._emit_notification)

    def _detach_push_channel(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self._remove_sink is not None:
            self._remove_sink()
            self._remove_sink = None

    def _emit_snapshot(self, snapshot: TrackerSnapshot) -> None:
        if self.socketio is not None:
            self.socketio.emit("tracker_update", snapshot.to_dict())

    def _emit_notification(self, notification: Notification) -> None:
        if self.socketio is not None:
            self.socketio.emit("notification", notification.to_dict())

    def _register_routes(self, app: Flask) -> None:
        """Register all API route handlers."""
        app.add_url_rule("/api/status", view_func=self._handle_status)
        app.add_url_rule("/api/status/clear", methods=["POST"], view_func=self._handle_clear_status)

        # Tracking numbers
        app.add_url_rule("/api/resi", methods=["GET"], view_func=self._handle_list_resi)
        app.add_url_rule("/api/resi", methods=["POST"], view_func=self._handle_submit_resi,
                         endpoint="submit_resi")
        app.add_url_rule("/api/resi/<string:key>/photos", view_func=self._handle_photos)

        # Notifications & errors
        app.add_url_rule("/api/notifications", view_func=self._handle_notifications)
        app.add_url_rule("/api/notifications/<int:notification_id>", methods=["DELETE"],
                         view_func=self._handle_dismiss)
        app.add_url_rule("/api/errors", view_func=self._handle_errors)

        # Lock
        app.add_url_rule("/api/lock", view_func=self._handle_lock)

    def _register_error_handlers(self, app: Flask) -> None:
        """Register HTTP error handlers."""
        @app.errorhandler(404)
        def not_found(error: Any) -> Tuple[Response, int]:
            return jsonify({"error": "Resource not found"}), 404

        @app.errorhandler(405)
        def method_not_allowed(error: Any) -> Tuple[Response, int]:
            return jsonify({"error": "Method not allowed"}), 405

        @app.errorhandler(500)
        def internal_error(error: Any) -> Tuple[Response, int]:
            return jsonify({"error": "Internal server error"}), 500

    # --- Route Handlers ---

    def _handle_status(self) -> Tuple[Response, int]:
        """Get the status line, found flag and loop health."""
        snapshot = self.state.get_snapshot()
        return jsonify({
            "status_message": snapshot.status_message,
            "is_resi_found": snapshot.is_resi_found,
            "lock_phase": snapshot.lock_phase,
            "record_count": len(snapshot.records),
            "last_cycle_at": snapshot.last_cycle_at,
            "timestamp": snapshot.timestamp,
        }), 200

    def _handle_clear_status(self) -> Tuple[Response, int]:
        self.state.clear_feedback()
        return jsonify({"success": True}), 200

    def _handle_list_resi(self) -> Tuple[Response, int]:
        snapshot = self.state.get_snapshot()
        return jsonify([r.to_dict() for r in snapshot.records]), 200

    def _handle_submit_resi(self) -> Tuple[Response, int]:
        """Store a new tracking number and wait for the write to land."""
        if not request.is_json:
            return jsonify({"error": "JSON required"}), 400
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return jsonify({"error": "JSON object required"}), 400
        number = data.get("number", "")

        future = self.submission.submit(number)
        if future is None:
            return jsonify({"error": "Tracking number is empty"}), 400

        try:
            key = future.result(timeout=self.submit_timeout_s)
        except ValidationError as e:
            return jsonify({"error": str(e)}), 400
        except StoreError as e:
            return jsonify({"error": f"Store write failed: {e}"}), 502
        except FutureTimeoutError:
            self.logger.warning(f"Submission of {number!r} still pending after {self.submit_timeout_s}s")
            return jsonify({"status": "pending"}), 202

        return jsonify({"success": True, "key": key, "number": number, "scanned": False}), 201

    def _handle_photos(self, key: str) -> Tuple[Response, int]:
        """List photo URLs of a record; clients must not cache them."""
        snapshot = self.state.get_snapshot()
        for record in snapshot.records:
            if record.key == key:
                response = jsonify({"key": key, "resi": record.resi, "photo_urls": list(record.photo_urls)})
                response.headers["Cache-Control"] = "no-store"
                return response, 200
        return jsonify({"error": f"Unknown resi key '{key}'"}), 404

    def _handle_notifications(self) -> Tuple[Response, int]:
        return jsonify([n.to_dict() for n in self.notifier.get_active()]), 200

    def _handle_dismiss(self, notification_id: int) -> Tuple[Response, int]:
        if self.notifier.dismiss(notification_id):
            return jsonify({"success": True}), 200
        return jsonify({"error": "Notification not found"}), 404

    def _handle_errors(self) -> Tuple[Response, int]:
        kind = request.args.get("kind")
        if kind is not None and kind not in {"fetch", "write", "validation"}:
            return jsonify({"error": f"Invalid kind '{kind}'"}), 400
        errors = self.state.get_errors(kind)
        return jsonify([
            {"kind": e.kind, "message": e.message, "path": e.path, "at": e.at}
            for e in errors
        ]), 200

    def _handle_lock(self) -> Tuple[Response, int]:
        snapshot = self.state.get_snapshot()
        driver = self.hardware_manager.get_status() if self.hardware_manager else None
        return jsonify({"phase": snapshot.lock_phase, "driver": driver}), 200

    # --- Lifecycle ---

    def run(self, host: str, port: int, debug: bool = False) -> None:
        """Start the HTTP + Socket.IO server (blocking)."""
        if self.app is None:
            self.create_app()
        self.logger.info(f"API server listening on {host}:{port}")
        self.socketio.run(self.app, host=host, port=port, debug=debug, allow_unsafe_werkzeug=True)

    def stop(self) -> None:
        """Detach from the state and notification channels."""
        self._detach_push_channel()
