#!/usr/bin/env python3
"""
Base Adapter for the blocking HTTP gateways (ledger indexer, token registry).
Wraps a requests Session with shared headers, timeout and error reporting.
"""

import logging
import requests
from typing import Dict, Optional, Any
from abc import ABC, abstractmethod

from errors import UpstreamUnavailableError

logger = logging.getLogger(__name__)


class BaseAdapter(ABC):
    """JSON-over-HTTP gateway; subclasses add endpoint methods and response validation."""

    def __init__(
        self, base_url: str = None, headers: Dict[str, str] = None, timeout: float = 30
    ):
        self.base_url = (base_url or "").rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()
        if headers:
            self.session.headers.update(headers)

    def get(self, endpoint: str, params: Dict[str, Any] = None) -> Optional[Any]:
        """
        GET ``endpoint`` below the base URL.

        Returns:
            Decoded JSON body, or None when the request or decoding failed
        """
        url = self._build_url(endpoint)
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except requests.exceptions.RequestException as e:
            self._handle_error(f"GET {url} failed: {e}")
        except ValueError as e:
            self._handle_error(f"GET {url} returned invalid JSON: {e}")
        return None

    def get_required(self, endpoint: str, params: Dict[str, Any] = None) -> Dict:
        """
        GET that raises instead of returning None.

        Callers use this when "the service failed" has to stay distinguishable
        from "the service answered with no data".
        """
        response = self.get(endpoint, params=params)
        if response is None or not self.validate_response(response):
            raise UpstreamUnavailableError(
                f"No usable response from {self._build_url(endpoint)}"
            )
        return response

    def close(self) -> None:
        self.session.close()

    def _build_url(self, endpoint: str) -> str:
        return f"{self.base_url}/{endpoint.lstrip('/')}" if endpoint else self.base_url

    def _handle_error(self, message: str) -> None:
        logger.warning("[%s] %s", type(self).__name__, message)

    @abstractmethod
    def validate_response(self, response: Any) -> bool:
        """True when a decoded body is a usable answer rather than an error payload."""
