"""
Generative model client used for structured (JSON) completions.
"""

import json
from typing import Any, Optional

from openai import OpenAI, OpenAIError

from talentmatch.utils.config import AppSettings, get_settings
from talentmatch.utils.exceptions import GenerationFailure, MalformedModelOutput
from talentmatch.utils.logger import get_logger

logger = get_logger(__name__)


def strip_code_fences(content: str) -> str:
    """Remove a surrounding markdown code block, if any."""
    content = content.strip()
    if content.startswith("```"):
        content = content.split("\n", 1)[1] if "\n" in content else ""
        content = content.rsplit("```", 1)[0]
    return content.strip()


class GenerativeModel:
    """
    Thin wrapper around the OpenAI Chat Completions API.

    Requests JSON-object output and returns the parsed object. Transport
    and API errors raise ``GenerationFailure``; replies that are empty or
    not a JSON object raise ``MalformedModelOutput``.
    """

    def __init__(
        self,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        client: Optional[OpenAI] = None,
        settings: Optional[AppSettings] = None,
    ):
        self._settings = settings or get_settings()
        llm = self._settings.llm
        self.model = model or llm.model
        self.temperature = llm.temperature if temperature is None else temperature
        self.max_tokens = max_tokens or llm.max_tokens
        self._client = client

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            llm = self._settings.llm
            self._client = OpenAI(
                api_key=llm.api_key.get_secret_value() if llm.api_key else None,
                base_url=llm.base_url,
                timeout=llm.request_timeout,
            )
        return self._client

    def generate_json(self, system_prompt: str, user_prompt: str) -> dict[str, Any]:
        """
        Run one completion and parse its JSON object reply.

        Raises:
            GenerationFailure: If the provider call fails.
            MalformedModelOutput: If the reply is not a JSON object.
        """
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                response_format={"type": "json_object"},
            )
        except OpenAIError as e:
            raise GenerationFailure(
                f"Generative model request failed: {e}",
                details={"model": self.model, "provider_error": type(e).__name__},
                cause=e,
            ) from e

        content = response.choices[0].message.content if response.choices else None
        if not content or not content.strip():
            raise MalformedModelOutput("Generative model returned an empty reply")

        try:
            parsed = json.loads(strip_code_fences(content))
        except json.JSONDecodeError as e:
            logger.warning(f"Failed to parse model reply as JSON: {e}")
            raise MalformedModelOutput(
                "Generative model reply is not valid JSON",
                details={"reply_length": len(content)},
                cause=e,
            ) from e

        if not isinstance(parsed, dict):
            raise MalformedModelOutput(
                "Generative model reply is not a JSON object",
                details={"reply_type": type(parsed).__name__},
            )
        return parsed


def create_generative_model(settings: Optional[AppSettings] = None) -> GenerativeModel:
    return GenerativeModel(settings=settings)
