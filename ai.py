import json
import logging
import re

from google import genai
from google.genai import types

from schemas import AgendaItem

logger = logging.getLogger(__name__)

_FENCE = re.compile(r"```(?:json)?")


def parse_json_list(text: str | None) -> list:
    """Parse a JSON array out of model output, tolerating markdown fences.

    Anything that is not a JSON array comes back as an empty list.
    """
    clean = _FENCE.sub("", text or "[]").strip()
    try:
        value = json.loads(clean)
    except ValueError:
        logger.warning("Failed to parse AI JSON, returning empty")
        return []
    return value if isinstance(value, list) else []


class ContentGenerator:
    def __init__(self, api_key: str, model: str = "gemini-2.0-flash") -> None:
        self._client = genai.Client(api_key=api_key)
        self._model = model

    def _generate(self, prompt: str, as_json: bool = False) -> str:
        config = types.GenerateContentConfig(response_mime_type="application/json") if as_json else None
        response = self._client.models.generate_content(
            model=self._model,
            contents=prompt,
            config=config,
        )
        return response.text or ""

    def description(self, title: str, vibe: str, key_details: str) -> str:
        prompt = f"""Write a compelling, marketing-focused event description for an event titled "{title}".
The vibe should be {vibe}.
Key details to include: {key_details}.
Keep it under 200 words, plain text, no markdown formatting other than paragraphs."""
        return self._generate(prompt).strip()

    def agenda(self, title: str, duration_hours: int) -> list[AgendaItem]:
        prompt = f"""Create a 3-item agenda for an event titled "{title}" lasting about {duration_hours} hours.
Return ONLY a valid JSON array of objects with keys: "time", "title", "description".
Do not wrap in markdown code blocks."""
        items = []
        for raw in parse_json_list(self._generate(prompt, as_json=True)):
            if isinstance(raw, dict):
                items.append(
                    AgendaItem(
                        time=str(raw.get("time", "")),
                        title=str(raw.get("title", "")),
                        description=str(raw.get("description", "")),
                    )
                )
        return items

    def tags(self, description: str) -> list[str]:
        prompt = f"""Generate 5 short, relevant tags for this event description: "{description}".
Return as a JSON array of strings."""
        return [str(tag) for tag in parse_json_list(self._generate(prompt, as_json=True)) if tag]
