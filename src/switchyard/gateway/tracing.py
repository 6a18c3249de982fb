"""Shared request tracing functionality for the gateway.

Provides human-readable trace IDs and debug data saving.

Request and response bodies are streamed through the gateway and are never
captured here; debug files only hold request metadata.
"""

from __future__ import annotations

import itertools
import json
import logging
import time
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class RequestTracer:
    """Handles request tracing and debug data saving for the gateway.

    Debug files are saved to: {debug_dir}/logs/{session_id}/{trace_id}/

    Example:
        tracer = RequestTracer(debug_dir="/tmp/debug")
        trace_id = tracer.generate_trace_id("POST", "OpenRouter")
        tracer.save_debug(trace_id, "1_request.json", {"path": "/openrouter/models"})
    """

    def __init__(self, debug_dir: str | Path | None = None, log_headers: bool = False):
        """Initialize tracer with optional debug directory.

        Args:
            debug_dir: Directory for debug files. None disables file output.
            log_headers: Include request/response headers in debug files.
        """
        self._counter = itertools.count(1)
        self._session_id: str | None = None
        self._debug_dir_config = debug_dir
        self.log_headers = log_headers

    @property
    def debug_dir(self) -> Path | None:
        """Get the debug directory path, creating session folder name on first access."""
        if not self._debug_dir_config:
            return None

        if self._session_id is None:
            self._session_id = time.strftime("%Y-%m-%d_%H-%M-%S")

        return Path(self._debug_dir_config) / "logs" / self._session_id

    def generate_trace_id(self, method: str, provider: str) -> str:
        """Generate a human-readable trace ID with sequence number and context.

        Format: {counter}_{hhmmss}_{method}_{provider}
        Example: 00001_031333_POST_OpenRouter
        """
        number = next(self._counter)
        timestamp = time.strftime("%H%M%S")

        # Clean context for filesystem
        context = "".join(c for c in f"{method}_{provider}" if c.isalnum() or c == "_")

        return f"{number:05d}_{timestamp}_{context or 'request'}"

    def save_debug(self, trace_id: str, filename: str, data: Any) -> None:
        """Save debug data to JSON file if debug_dir is configured."""
        if not self.debug_dir:
            return

        try:
            trace_path = self.debug_dir / trace_id
            trace_path.mkdir(parents=True, exist_ok=True)

            filepath = trace_path / filename
            with open(filepath, "w") as f:
                json.dump(data, f, indent=2, default=str)
            logger.debug("[%s] Saved debug file: %s", trace_id, filepath)
        except OSError as e:
            logger.warning("[%s] Failed to save debug file %s: %s", trace_id, filename, e)

    def record_request(
        self,
        trace_id: str,
        method: str,
        path: str,
        target_url: str,
        headers: Any,
    ) -> None:
        """Save the inbound request line and its rewritten upstream target."""
        data: dict[str, Any] = {
            "method": method,
            "path": path,
            "target_url": target_url,
        }
        if self.log_headers:
            data["headers"] = dict(headers)
        self.save_debug(trace_id, "1_request.json", data)

    def record_response(self, trace_id: str, status: int, headers: Any) -> None:
        """Save the upstream status (and headers, if enabled)."""
        data: dict[str, Any] = {"status": status}
        if self.log_headers:
            data["headers"] = dict(headers)
        self.save_debug(trace_id, "2_response.json", data)
