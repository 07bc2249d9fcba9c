"""Google Gemini API wrapper used by the LLM judge."""

import json
import logging

from google import genai
from google.genai import types

from services.pipeline.errors import JudgeUnavailable

logger = logging.getLogger(__name__)


class GeminiClient:
    """Thin JSON-in/JSON-out wrapper around a genai.Client.

    The underlying client is created on first call so that constructing a
    registry never touches the network.
    """

    def __init__(self, api_key: str, model: str, max_output_tokens: int = 2048) -> None:
        if not api_key:
            raise JudgeUnavailable("No GEMINI_API_KEY set")
        self._api_key = api_key
        self.model = model
        self.max_output_tokens = max_output_tokens
        self._client: genai.Client | None = None

    def _get_client(self) -> genai.Client:
        if self._client is None:
            self._client = genai.Client(api_key=self._api_key)
        return self._client

    def generate_json(self, prompt: str) -> dict | list:
        """Send a prompt to Gemini and parse the JSON response.

        Blocking; callers running on an event loop use asyncio.to_thread.
        Raises JudgeUnavailable on empty or unparseable output.
        """
        response = self._get_client().models.generate_content(
            model=self.model,
            contents=prompt,
            config=types.GenerateContentConfig(
                temperature=0,
                max_output_tokens=self.max_output_tokens,
            ),
        )

        text = (response.text or "").strip()
        if not text:
            raise JudgeUnavailable("Gemini returned an empty response")

        try:
            return json.loads(strip_code_fences(text))
        except json.JSONDecodeError as e:
            raise JudgeUnavailable(f"Failed to parse Gemini response as JSON: {e}") from e


def strip_code_fences(text: str) -> str:
    """Remove a surrounding markdown code fence, if present."""
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else text[3:]
        if text.endswith("```"):
            text = text[:-3]
        text = text.strip()
    return text
