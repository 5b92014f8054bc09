# AI_suggester.py
import json
import logging
import re
import time
from typing import Iterable, Optional

import requests

from core.constants import EXCLUSION_LIMIT, GEMINI_API_URL, GEMINI_MODEL
from core.http_client import HTTPClient

FENCE_PATTERN = re.compile(r'```json|```')


def parse_suggestions(text: Optional[str]) -> list:
    """
    Extract the JSON array from a model reply.

    Code fences are stripped before parsing. Anything that does not decode to a
    JSON array (empty reply, prose, an object) yields an empty list.
    """
    if not text:
        return []

    clean_text = FENCE_PATTERN.sub('', text).strip()
    try:
        parsed = json.loads(clean_text)
    except json.JSONDecodeError:
        return []

    if not isinstance(parsed, list):
        return []
    return parsed


class AISuggester:
    def __init__(self, gemini_api_key: str = None, model: str = GEMINI_MODEL,
                 http_client: HTTPClient = None, max_retries: int = 3):
        """
        Ask a Gemini model for candidate clean CDN addresses

        Args:
            gemini_api_key: Optional Gemini API key (without one, no call is made and
                the pool is filled from fallback synthesis only)
            model: Gemini model name
            http_client: Shared HTTP client, created on demand
            max_retries: Attempts per suggestion request
        """
        self.gemini_api_key = gemini_api_key or ''
        self.model = model or GEMINI_MODEL
        self.http_client = http_client or HTTPClient()
        self.max_retries = max_retries
        self.logger = logging.getLogger(__name__)

    def suggest(self, count: int, seen: Iterable[str] = ()) -> list:
        """
        Request roughly twice `count` addresses, excluding recently seen ones

        Returns the parsed (unvalidated) array, or an empty list on any failure.
        """
        if not self.gemini_api_key:
            self.logger.info("No Gemini API key configured, using fallback generation")
            return []

        prompt = self._prepare_prompt(count, seen)
        text = self._call_gemini(prompt)
        if text is None:
            return []

        suggestions = parse_suggestions(text)
        if not suggestions:
            self.logger.warning("Failed to parse AI response, using fallback generation")
        return suggestions

    def _prepare_prompt(self, count: int, seen: Iterable[str]) -> str:
        excluded = sorted(seen)[-EXCLUSION_LIMIT:]
        return f"""Generate a list of {count * 2} unique and "clean" CDN IP addresses.
Use a wide variety of prefixes from Cloudflare (e.g., 172.64.x.x, 104.18.x.x, 162.159.x.x, 188.114.x.x) and Fastly (e.g., 151.101.x.x).
I need {count} unique ones.
Previously generated IPs (DO NOT REPEAT THESE): {', '.join(excluded)}.
Return ONLY a JSON array of strings."""

    def _call_gemini(self, prompt: str) -> Optional[str]:
        """POST the prompt with retry logic, returning the reply text or None"""
        url = GEMINI_API_URL.format(model=self.model)
        headers = {'x-goog-api-key': self.gemini_api_key}
        payload = {
            'contents': [{
                'parts': [{'text': prompt}]
            }]
        }

        for attempt in range(self.max_retries):
            try:
                self.logger.info(f"Making Gemini API call (attempt {attempt + 1})")
                response = self.http_client.post_json(url, payload, headers=headers)
                self.logger.info(f"API response status: {response.status_code}")

                if response.status_code == 200:
                    try:
                        body = response.json()
                    except ValueError as e:
                        self.logger.error(f"Response body is not JSON: {e}")
                        return None
                    text = self._extract_text(body)
                    self.logger.info(f"Received AI response: {(text or '')[:200]}...")
                    return text

                self.logger.error(f"API call failed with status {response.status_code}: {response.text[:200]}")
                if response.status_code == 429 and attempt < self.max_retries - 1:
                    self.logger.info("Rate limited, waiting 10 seconds...")
                    time.sleep(10)
                    continue
                return None

            except requests.exceptions.Timeout:
                self.logger.warning(f"API call timed out (attempt {attempt + 1})")
            except requests.exceptions.RequestException as e:
                self.logger.error(f"Request error: {e}")

            if attempt < self.max_retries - 1:
                time.sleep(2 ** attempt)

        self.logger.error("AI generation failed, using fallback generation")
        return None

    def _extract_text(self, body) -> Optional[str]:
        try:
            parts = body['candidates'][0]['content']['parts']
            return ''.join(part.get('text', '') for part in parts)
        except (KeyError, IndexError, TypeError, AttributeError):
            self.logger.warning("Unexpected Gemini response shape")
            return None
