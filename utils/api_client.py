import logging

import requests

logger = logging.getLogger(__name__)


class RemoteTimetableClient:
    """Talks to the network-backed timetable generator."""

    def __init__(self, base_url: str, timeout: float = 30,
                 ping_url: str = "https://www.google.com/generate_204", ping_timeout: float = 3):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.ping_url = ping_url
        self.ping_timeout = ping_timeout

    def is_online(self) -> bool:
        try:
            response = requests.get(self.ping_url, timeout=self.ping_timeout)
        except requests.RequestException as exc:
            logger.info("Connectivity probe failed: %s", exc)
            return False
        return response.status_code in (200, 204)

    def post(self, endpoint: str, data: dict):
        url = self.base_url
        if endpoint.strip("/"):
            url = f"{url}/{endpoint.lstrip('/')}"
        response = requests.post(url, json=data, timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    def generate(self, payload: dict) -> dict:
        return self.post("", payload)
