"""Loader for the static JSON feed of schools and instructors.

The feed is fetched once at startup, from `MCF_FEED_URL` when set, otherwise
from the local file `MCF_FEED_PATH`. A failed fetch is logged and yields an
empty list: the map then simply shows no data, and nothing retries.
"""

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional
import requests

from config import Config

logger = logging.getLogger(__name__)


class FeedClient:
    def __init__(self, url: Optional[str] = None, path: Optional[str] = None,
                 timeout: Optional[int] = None, session: Optional[requests.Session] = None):
        self.url = url if url is not None else Config.FEED_URL
        self.path = path if path is not None else Config.FEED_PATH
        self.timeout = timeout or Config.FEED_TIMEOUT
        self.session = session or requests.Session()
        self.headers = {'Accept': 'application/json'}

    def fetch(self) -> List[Dict]:
        try:
            data = self._fetch_url() if self.url else self._read_file()
        except requests.exceptions.RequestException as e:
            logger.error(f"Erreur chargement JSON ({self.url}): {e}")
            return []
        except (OSError, ValueError) as e:
            logger.error(f"Erreur chargement JSON ({self.path}): {e}")
            return []

        if not isinstance(data, list):
            logger.error(f"Feed must be a JSON array, got {type(data).__name__}")
            return []
        logger.info(f"Fetched {len(data)} raw locations")
        return data

    def _fetch_url(self):
        response = self.session.get(self.url, headers=self.headers, timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    def _read_file(self):
        with Path(self.path).open(encoding='utf-8') as fh:
            return json.load(fh)
