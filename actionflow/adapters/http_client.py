"""Shared HTTP transport utilities for the task REST adapter.

This module provides a thin wrapper around ``requests.Session`` so the task
adapter gets one timeout policy and typed transport failures.

Dependencies:
    - ``requests`` for network I/O.
    - ``actionflow.adapters.api_errors`` for typed transport failures.

Call context:
    - Constructed by ``actionflow/adapters/task_rest.py``.
    - Used only inside adapter methods; use cases interact through ports.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests
from requests import exceptions as req_exc

from actionflow.adapters.api_errors import ApiConnectionError, ApiError, ApiTimeoutError


@dataclass
class HttpConfig:
    """Timeout configuration for adapter HTTP calls.

    Attributes:
        request_timeout_s: Timeout in seconds applied to every task call.
    """
    request_timeout_s: float = 15.0


class JsonSession:
    """``requests`` wrapper that sends JSON and raises typed transport errors.

    There is no retry loop: a failed call is reported once and the operator
    decides whether to re-issue it.
    """

    def __init__(self, cfg: HttpConfig) -> None:
        """Create the session.

        Args:
            cfg: Shared timeout settings.

        Side Effects:
            Creates a persistent ``requests.Session`` object.
        """
        self.session = requests.Session()
        self.cfg = cfg

    def _headers(self, json_body: bool = False) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if json_body:
            headers["Content-Type"] = "application/json"
        return headers

    def post(
        self,
        url: str,
        *,
        json_body: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> requests.Response:
        """Send a JSON POST request.

        Args:
            url: Absolute endpoint URL.
            json_body: Optional payload object serialized to JSON text.
            timeout: Optional timeout override in seconds.

        Returns:
            ``requests.Response`` for any HTTP status.

        Raises:
            ApiTimeoutError: If the timeout elapsed.
            ApiConnectionError: If the host could not be reached.
            ApiError: For any other ``requests`` failure.
        """
        context = f"POST {url}"
        data = None if json_body is None else json.dumps(json_body)
        try:
            return self.session.post(
                url,
                data=data,
                headers=self._headers(json_body=json_body is not None),
                timeout=timeout or self.cfg.request_timeout_s,
            )
        except req_exc.Timeout as exc:
            raise ApiTimeoutError(f"Timeout contacting {url}", context=context) from exc
        except req_exc.ConnectionError as exc:
            raise ApiConnectionError(f"Could not connect to {url}", context=context) from exc
        except req_exc.RequestException as exc:
            raise ApiError(str(exc) or "Failed to call API", context=context) from exc

    def close(self) -> None:
        self.session.close()


__all__ = ["HttpConfig", "JsonSession"]
