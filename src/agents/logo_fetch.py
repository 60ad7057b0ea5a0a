"""
logo_fetch.py — Best-effort brand logo download

The proposal PDF shows the dark and light logos served from the app's own
origin. A logo is cosmetic: any failure (no origin, network error, non-2xx)
yields None and the PDF is drawn without it.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Tuple

import requests

log = logging.getLogger("continuate.logos")

LOGO_DARK_PATH = "/logo-dark.png"
LOGO_LIGHT_PATH = "/logo-light.png"


class LogoFetcher:

    def __init__(self, timeout: float = 10.0,
                 dark_path: str = LOGO_DARK_PATH, light_path: str = LOGO_LIGHT_PATH):
        self.timeout = timeout
        self.dark_path = dark_path
        self.light_path = light_path

    def fetch(self, origin: str, path: str) -> Optional[bytes]:
        if not origin:
            return None
        url = f"{origin}{path}"
        try:
            resp = requests.get(url, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            log.info("Logo fetch failed %s: %s", url, e)
            return None
        if not resp.ok:
            log.info("Logo fetch %s returned HTTP %d", url, resp.status_code)
            return None
        return resp.content or None

    def fetch_pair(self, origin: str) -> Tuple[Optional[bytes], Optional[bytes]]:
        """(dark, light), fetched concurrently; both finish before returning."""
        if not origin:
            return None, None
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="logo") as pool:
            dark = pool.submit(self._safe_fetch, origin, self.dark_path)
            light = pool.submit(self._safe_fetch, origin, self.light_path)
            return dark.result(), light.result()

    def _safe_fetch(self, origin: str, path: str) -> Optional[bytes]:
        try:
            return self.fetch(origin, path)
        except Exception as e:
            log.warning("Logo fetch error %s%s: %s", origin, path, e)
            return None
