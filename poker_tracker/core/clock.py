from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Optional

import requests
from loguru import logger

from poker_tracker.core.errors import ClockError


class LocalClock:

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class HttpClock:
    """
    Авторитетний час із заголовка Date HTTP-відповіді.
    Будь-яка помилка (мережа, таймаут, битий заголовок) -> локальний годинник.
    """

    def __init__(
        self,
        url: str,
        timeout: float = 3.0,
        fallback: Optional[LocalClock] = None,
        session: Optional[requests.Session] = None,
    ):
        self.url = url
        self.timeout = timeout
        self.fallback = fallback or LocalClock()
        self.http = session or requests.Session()

    def fetch(self) -> datetime:
        try:
            resp = self.http.head(self.url, timeout=self.timeout, allow_redirects=True)
        except requests.RequestException as e:
            raise ClockError(f"Time server unreachable: {e}") from e

        header = resp.headers.get("Date")
        if not header:
            raise ClockError("Time server response has no Date header")

        try:
            dt = parsedate_to_datetime(header)
        except (TypeError, ValueError) as e:
            raise ClockError(f"Bad Date header {header!r}") from e

        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)

    def now(self) -> datetime:
        try:
            return self.fetch()
        except ClockError as e:
            logger.warning(f"[HttpClock] {e}; falling back to local clock")
            return self.fallback.now()


def build_clock(url: Optional[str], timeout: float = 3.0):
    if url:
        return HttpClock(url, timeout=timeout)
    return LocalClock()
