from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests

from actionflow.domain.envelope import ApiCall, is_success, parse_body
from actionflow.domain.ports import TransportPort

from .http_client import HttpConfig, JsonSession


class TaskRestAdapter(TransportPort):
    """REST adapter posting task envelopes to the workflow authority."""

    def __init__(self, base_url: str, *, request_timeout_s: float = 15.0) -> None:
        if not base_url or not str(base_url).strip():
            raise ValueError("TaskRestAdapter requires a base URL")
        self.base_url = str(base_url).strip()
        self.cfg = HttpConfig(request_timeout_s=request_timeout_s)
        self.session = JsonSession(self.cfg)
        self._log = logging.getLogger(__name__)

    def url_for(self, path: str) -> str:
        base = self.base_url
        if base.endswith("/"):
            base = base[:-1]
        if not path.startswith("/"):
            path = f"/{path}"
        return f"{base}{path}"

    def post(self, path: str, body: Dict[str, Any]) -> ApiCall:
        """Send ``body`` to ``path`` and interpret the response.

        Raises:
            ApiError: Propagated from :class:`JsonSession` on transport failure.
        """
        url = self.url_for(path)
        resp = self.session.post(url, json_body=body)
        data = parse_body(self._text(resp))
        status = int(resp.status_code)
        success = is_success(status, data)
        self._log.debug("POST %s -> HTTP %s success=%s", url, status, success)
        return ApiCall(
            success=success,
            status=status,
            url=url,
            request_body=body,
            data=data,
        )

    def close(self) -> None:
        self.session.close()

    @staticmethod
    def _text(resp: requests.Response) -> Optional[str]:
        text = getattr(resp, "text", None)
        if text is None:
            return None
        return str(text)
