"""Owner-side wrappers around the /api/ai endpoints; failures return a fallback value."""

import logging
from datetime import datetime
from typing import List
from urllib.parse import quote

import httpx
from pydantic import TypeAdapter, ValidationError

from schemas import AgendaItem

logger = logging.getLogger(__name__)

DESCRIPTION_FALLBACK = "Failed to generate description."

SEASON_MONTHS = {"spring": 4, "summer": 7, "fall": 10, "winter": 12}

_agenda_adapter = TypeAdapter(List[AgendaItem])


class AiClient:
    def __init__(self, client: httpx.Client, admin_secret: str, api_prefix: str = "/api/ai") -> None:
        self._client = client
        self._admin_secret = admin_secret
        self._api_prefix = api_prefix.rstrip("/")

    def _call(self, endpoint: str, body: dict) -> dict:
        response = self._client.post(
            f"{self._api_prefix}/{endpoint}",
            headers={"Authorization": f"Bearer {self._admin_secret}"},
            json=body,
        )
        response.raise_for_status()
        return response.json()

    def generate_description(self, title: str, vibe: str, key_details: str) -> str:
        try:
            text = self._call("description", {"title": title, "vibe": vibe, "keyDetails": key_details})["text"]
            if not isinstance(text, str):
                raise TypeError("description is not a string")
            return text
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
            logger.error("GenAI Error: %s", e)
            return DESCRIPTION_FALLBACK

    def generate_agenda(self, title: str, duration_hours: int = 6) -> List[AgendaItem]:
        try:
            data = self._call("agenda", {"title": title, "duration": duration_hours})
            return _agenda_adapter.validate_python(data.get("agenda") or [])
        except (httpx.HTTPError, ValueError, AttributeError, ValidationError) as e:
            logger.error("GenAI Error: %s", e)
            return []

    def generate_tags(self, description: str) -> List[str]:
        try:
            data = self._call("tags", {"description": description})
            return [str(t) for t in data.get("tags") or []]
        except (httpx.HTTPError, ValueError, TypeError, AttributeError) as e:
            logger.error("GenAI Error: %s", e)
            return []


def generate_event_image(prompt: str) -> str:
    """Placeholder artwork seeded by the prompt; no model call."""
    return f"https://picsum.photos/seed/{quote(prompt, safe='')}/800/400"


def suggest_optimal_date(event_type: str, season: str, today: datetime | None = None) -> str:
    """Heuristic scheduling hint: the 15th of the season's opening month at 18:00."""
    year = (today or datetime.now()).year
    month = SEASON_MONTHS.get(season.strip().lower(), 1)
    return datetime(year, month, 15, 18, 0).isoformat(timespec="minutes")
