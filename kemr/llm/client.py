"""
Anthropic client used for the clinical summary.

Structured output goes through a forced tool call so the reply always
validates against a pydantic schema. Context-free requests are cached on
disk by a hash of model, prompt and schema.
"""

from __future__ import annotations

import hashlib
import json
import logging
from pathlib import Path
from typing import Any, TypeVar

from anthropic import Anthropic
from pydantic import BaseModel

from kemr.config import get_settings

T = TypeVar("T", bound=BaseModel)

logger = logging.getLogger(__name__)

TOOL_NAME = "output"
DEFAULT_SYSTEM = "You are a clinical documentation assistant. Use the provided tool to output your response."


class ResponseCache:
    """One JSON file per cached tool input, named by request hash."""

    def __init__(self, directory: Path, enabled: bool = True):
        self.directory = directory
        self.enabled = enabled
        if enabled:
            directory.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def key(**request: Any) -> str:
        content = json.dumps(request, sort_keys=True, default=str)
        return hashlib.sha256(content.encode()).hexdigest()[:16]

    def get(self, key: str) -> str | None:
        path = self.directory / f"{key}.json"
        if self.enabled and path.exists():
            return path.read_text()
        return None

    def put(self, key: str, payload: dict) -> None:
        if self.enabled:
            (self.directory / f"{key}.json").write_text(json.dumps(payload))

    def clear(self) -> int:
        """Delete every cached response. Returns the number removed."""
        if not self.directory.exists():
            return 0
        removed = 0
        for path in self.directory.glob("*.json"):
            path.unlink()
            removed += 1
        return removed


class LLMClient:
    """Claude client returning pydantic models."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        cache_dir: Path | None = None,
        enable_cache: bool = True,
    ):
        settings = get_settings()
        self.api_key = api_key or settings.anthropic_api_key
        if not self.api_key:
            raise ValueError("ANTHROPIC_API_KEY not set")

        self.client = Anthropic(api_key=self.api_key)
        self.model = model or settings.llm_model
        self.cache = ResponseCache(cache_dir or settings.llm_cache_dir, enabled=enable_cache)

    def generate_structured(
        self,
        prompt: str,
        schema: type[T],
        system: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.3,
        use_cache: bool = True,
    ) -> T:
        """
        Ask the model for a response matching `schema`.

        Raises ValueError when the reply carries no tool call, and pydantic's
        ValidationError when the tool input does not fit the schema.
        """
        input_schema = schema.model_json_schema()
        system = system or DEFAULT_SYSTEM

        key = None
        if use_cache:
            key = ResponseCache.key(model=self.model, system=system, prompt=prompt, schema=input_schema)
            cached = self.cache.get(key)
            if cached:
                logger.debug("LLM cache hit %s", key)
                return schema.model_validate_json(cached)

        logger.info("Requesting %s from %s", schema.__name__, self.model)
        response = self.client.messages.create(
            model=self.model,
            max_tokens=max_tokens,
            system=system,
            messages=[{"role": "user", "content": prompt}],
            tools=[{
                "name": TOOL_NAME,
                "description": f"Record the {schema.__name__}",
                "input_schema": input_schema,
            }],
            tool_choice={"type": "tool", "name": TOOL_NAME},
            temperature=temperature,
        )

        tool_input = next(
            (b.input for b in response.content if b.type == "tool_use" and b.name == TOOL_NAME),
            None,
        )
        if tool_input is None:
            raise ValueError("No tool call in response")

        result = schema.model_validate(tool_input)
        if key:
            self.cache.put(key, tool_input)
        return result

    def generate_with_context(
        self,
        prompt: str,
        context: dict[str, Any],
        schema: type[T],
        system: str | None = None,
        **kwargs: Any,
    ) -> T:
        """Prefix the prompt with a JSON <context> block. Never cached."""
        body = json.dumps(context, indent=2, default=str)
        return self.generate_structured(
            prompt=f"<context>\n{body}\n</context>\n\n{prompt}",
            schema=schema,
            system=system,
            use_cache=False,
            **kwargs,
        )

    def clear_cache(self) -> int:
        return self.cache.clear()


class PromptBuilder:
    """Loads templates from kemr/prompts and fills `{{name}}` placeholders."""

    def __init__(self, prompts_dir: Path | None = None):
        self.prompts_dir = prompts_dir or Path(__file__).parent.parent / "prompts"

    def load_template(self, path: str) -> str:
        full_path = self.prompts_dir / path
        if not full_path.exists():
            raise FileNotFoundError(f"Prompt template not found: {full_path}")
        return full_path.read_text()

    def render(self, template_path: str, **values: Any) -> str:
        text = self.load_template(template_path)
        for name, value in values.items():
            if isinstance(value, (dict, list)):
                value = json.dumps(value, indent=2, default=str)
            text = text.replace("{{" + name + "}}", str(value))
        return text


_client: LLMClient | None = None


def get_client() -> LLMClient:
    """Shared client, created from settings on first use."""
    global _client
    if _client is None:
        _client = LLMClient()
    return _client


def set_client(client: LLMClient | None) -> None:
    global _client
    _client = client
