"""
Site speed producer
Measures round-trip time of a GET against the site's home URL
"""
import logging
import time
from typing import Any, Dict, Optional

import requests

from app.cache.errors import ProducerError
from app.schemas import SiteSpeed

logger = logging.getLogger("site_speed")


class SiteSpeedProducer:
    """
    Value producer for the site speed cache.

    Any HTTP response counts as a measurement, including error status
    codes. Only transport failures (DNS, refused, timeout) are errors.
    """

    def __init__(
        self,
        site_name: str,
        url: str,
        session: Optional[requests.Session] = None,
    ):
        self.site_name = site_name
        self.url = url
        self._session = session or requests.Session()

    def default_value(self) -> Dict[str, Any]:
        """Unmeasured placeholder."""
        return SiteSpeed(site_name=self.site_name).model_dump()

    def produce(self, timeout: float) -> Dict[str, Any]:
        """
        Time one request to the site.

        Args:
            timeout: Seconds before the request is abandoned

        Returns:
            SiteSpeed payload with speed_ms rounded to 2 decimals

        Raises:
            ProducerError: If the request fails
        """
        start = time.perf_counter()
        try:
            response = self._session.get(self.url, timeout=timeout)
        except requests.RequestException as e:
            raise ProducerError(f"Request to {self.url} failed: {e}") from e
        elapsed_ms = round((time.perf_counter() - start) * 1000, 2)

        logger.info(f"Measured {self.url}: {elapsed_ms}ms (HTTP {response.status_code})")
        return SiteSpeed(site_name=self.site_name, speed_ms=elapsed_ms).model_dump()
