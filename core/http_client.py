# core/http_client.py
import logging
import time
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)


class HTTPClient:
    def __init__(self, timeout: float = 45, request_delay: float = 1.0):
        self.session = requests.Session()
        self.session.headers.update({
            'User-Agent': 'ip-core/2.0',
            'Content-Type': 'application/json'
        })
        self.timeout = timeout
        self.last_request_time = 0
        self.request_delay = request_delay

    def _rate_limit(self):
        """Enforce rate limiting between requests"""
        elapsed = time.time() - self.last_request_time
        if elapsed < self.request_delay:
            time.sleep(self.request_delay - elapsed)
        self.last_request_time = time.time()

    def post_json(self, url: str, payload: Dict[str, Any],
                  headers: Optional[Dict[str, str]] = None) -> requests.Response:
        """POST a JSON body with rate limiting; network errors propagate to the caller"""
        self._rate_limit()
        logger.debug("POST %s", url)
        return self.session.post(url, json=payload, headers=headers, timeout=self.timeout)
