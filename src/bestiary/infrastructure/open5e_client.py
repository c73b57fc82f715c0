import os

import httpx

from bestiary.infrastructure.resilient_http import get_json_with_retry


def _optional_text(value: str | None) -> str | None:
    text = str(value or "").strip()
    return text or None


class Open5eClient:
    """Pages through the Open5e monster list, optionally filtered to one source document."""

    BASE_URL = "https://api.open5e.com"
    MONSTERS_PATH = "/monsters/"
    DEFAULT_PAGE_SIZE = 50

    def __init__(
        self,
        base_url: str = BASE_URL,
        timeout: float = 10.0,
        retries: int = 2,
        backoff_seconds: float = 0.2,
        page_size: int = DEFAULT_PAGE_SIZE,
        document_slug: str | None = None,
        http_client: httpx.Client | None = None,
    ) -> None:
        self._retries = retries
        self._backoff_seconds = backoff_seconds
        self.page_size = max(1, int(page_size))
        self.document_slug = _optional_text(document_slug)
        self.client = http_client or httpx.Client(base_url=base_url, timeout=timeout)

    @classmethod
    def from_env(cls) -> "Open5eClient":
        return cls(
            base_url=os.getenv("BESTIARY_OPEN5E_BASE_URL", cls.BASE_URL),
            timeout=float(os.getenv("BESTIARY_CONTENT_TIMEOUT_S", "10")),
            retries=int(os.getenv("BESTIARY_CONTENT_RETRIES", "2")),
            backoff_seconds=float(os.getenv("BESTIARY_CONTENT_BACKOFF_S", "0.2")),
            page_size=int(os.getenv("BESTIARY_OPEN5E_PAGE_SIZE", str(cls.DEFAULT_PAGE_SIZE))),
            document_slug=os.getenv("BESTIARY_OPEN5E_DOCUMENT"),
        )

    def monster_params(self, page: int) -> dict[str, int | str]:
        params: dict[str, int | str] = {"page": max(1, int(page)), "limit": self.page_size}
        if self.document_slug:
            params["document__slug"] = self.document_slug
        return params

    def list_monsters(self, page: int = 1) -> dict:
        """One page of monsters; ``next`` is empty on the last page."""

        return get_json_with_retry(
            self.client,
            self.MONSTERS_PATH,
            params=self.monster_params(page),
            retries=self._retries,
            backoff_seconds=self._backoff_seconds,
        )

    def close(self) -> None:
        self.client.close()
