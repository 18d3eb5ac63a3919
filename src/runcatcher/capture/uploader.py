"""
HTTP uploader - sends accepted captures to the capture service.

One POST per capture, no retry and no local queue: if the request fails the
snapshot is lost and the failure is logged.
"""

import logging
import time
from typing import Any, Dict, Optional

import requests

from .types import CaptureEvent, isoformat_utc


logger = logging.getLogger(__name__)


DEFAULT_SERVER_URL = "http://localhost:3000"


class CaptureUploader:
    """
    Posts CaptureEvents to ``<server_url>/capture``.

    Usage:
        uploader = CaptureUploader("http://localhost:3000")
        result = uploader.send(event)
        if result:
            print(result['filename'])
    """

    def __init__(
        self,
        server_url: str = DEFAULT_SERVER_URL,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None
    ):
        """
        Args:
            server_url: Base URL of the capture service
            timeout: HTTP request timeout in seconds
            session: Optional requests session (shared connection pool)
        """
        self.server_url = server_url.rstrip('/')
        self.timeout = timeout
        self._session = session or requests.Session()

        # Statistics
        self._uploaded = 0
        self._failed = 0
        self._last_error: Optional[str] = None

    @property
    def capture_url(self) -> str:
        return f"{self.server_url}/capture"

    @property
    def last_error(self) -> Optional[str]:
        """Get last error message."""
        return self._last_error

    def send(self, event: CaptureEvent) -> Optional[Dict[str, Any]]:
        """
        Upload one capture.

        Returns:
            dict: Server response ({success, filename, message}) or None on failure
        """
        payload = {
            'image': event.data_uri,
            'motionSpeed': event.motion_speed,
            'timestamp': isoformat_utc(time.time()),
        }

        try:
            response = self._session.post(self.capture_url, json=payload, timeout=self.timeout)
            response.raise_for_status()
            result = response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            self._failed += 1
            self._last_error = f"Error saving runner image: {e}"
            logger.error("Error sending %s to backend: %s", event.label, e)
            return None

        self._uploaded += 1
        self._last_error = None
        logger.info("%s captured and saved as %s", event.label, result.get('filename'))
        return result

    def health(self) -> Optional[Dict[str, Any]]:
        """Fetch the service health document, None if unreachable."""
        try:
            response = self._session.get(f"{self.server_url}/health", timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.warning("Capture service not reachable at %s: %s", self.server_url, e)
            return None

    def get_stats(self) -> Dict[str, Any]:
        """Get upload statistics."""
        return {
            'server_url': self.server_url,
            'uploaded': self._uploaded,
            'failed': self._failed,
            'last_error': self._last_error,
        }

    def close(self) -> None:
        self._session.close()
