"""
Overpass API client

Fetches the highways of a bounding box together with their nodes and
turn-restriction relations, including:
- Rate limiting
- Retry logic
- Error handling
"""

import time
from typing import Any, Dict, Optional

import requests
from loguru import logger

from ..config import APIConfig, get_config


def build_highway_query(south: float, west: float, north: float, east: float, timeout: int) -> str:
    """Overpass QL for all highways in a bbox, their nodes and restriction relations"""
    bbox = f"{south},{west},{north},{east}"
    return f"""
    [out:json][timeout:{timeout}];
    way["highway"]({bbox})->.roads;
    (
        .roads;
        node(w.roads);
        relation["type"="restriction"](bw.roads);
    );
    out body;
    """


class OverpassClient:
    """Client for interacting with Overpass API"""

    def __init__(self, config: Optional[APIConfig] = None):
        self.config = config or get_config().api
        self._last_request_time = 0.0

    def _rate_limit(self):
        """Ensure we don't exceed rate limits"""
        elapsed = time.time() - self._last_request_time
        if elapsed < self.config.min_request_interval:
            time.sleep(self.config.min_request_interval - elapsed)
        self._last_request_time = time.time()

    def fetch_bbox(self, south: float, west: float, north: float, east: float) -> Dict[str, Any]:
        """Fetch the raw street graph of a WGS84 bounding box"""
        logger.info(f"Fetching highways in bbox ({south}, {west}, {north}, {east})")
        data = self.query(build_highway_query(south, west, north, east, self.config.overpass_timeout))
        logger.info(f"Received {len(data.get('elements', []))} elements")
        return data

    def query(self, query: str) -> Dict[str, Any]:
        """
        Execute Overpass API query with retry logic

        Args:
            query: Overpass QL query string

        Returns:
            JSON response from Overpass API

        Raises:
            RuntimeError: If query fails after all retries
        """
        self._rate_limit()

        headers = {
            "User-Agent": self.config.user_agent,
            "Content-Type": "application/x-www-form-urlencoded"
        }
        retries = self.config.max_retries

        for attempt in range(retries):
            last = attempt == retries - 1
            wait_time = self.config.retry_delay * (attempt + 1)
            try:
                response = requests.post(
                    self.config.overpass_url,
                    data={"data": query},
                    headers=headers,
                    timeout=self.config.overpass_timeout
                )
                response.raise_for_status()
                return response.json()
            except requests.exceptions.Timeout:
                if last:
                    raise RuntimeError(f"Overpass API timeout after {retries} attempts")
                logger.warning(f"Overpass timeout (attempt {attempt + 1}/{retries}). Retrying in {wait_time}s...")
            except requests.exceptions.HTTPError as e:
                status = e.response.status_code
                if status not in (429, 504) or last:
                    raise RuntimeError(f"Overpass API HTTP error {status} after {attempt + 1} attempts") from e
                logger.warning(f"Overpass {status} (attempt {attempt + 1}/{retries}). Retrying in {wait_time}s...")
            except requests.exceptions.RequestException as e:
                if last:
                    raise RuntimeError(f"Overpass API request failed after {retries} attempts: {e}") from e
                logger.warning(f"Overpass request failed (attempt {attempt + 1}): {e}")
            time.sleep(wait_time)

        return {"elements": []}
