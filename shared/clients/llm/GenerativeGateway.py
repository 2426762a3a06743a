"""Generative gateway: prompt → parsed JSON.

Model output is treated as untrusted. This layer only guarantees that a
request yields parsed JSON (or a ProviderUnavailableError); the caller
validates the structure.
"""

import json
import re
from typing import Any

import httpx

from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.helper.errors import ProviderUnavailableError

_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


class GenerativeGateway:
    """Thin wrapper around an LLMClientInterface with uniform error handling."""

    def __init__(self, helper_config: HelperConfig, llm_client: LLMClientInterface) -> None:
        self.logging = helper_config.get_logger()
        self._llm_client = llm_client

    async def generate_json(self, prompt: str, system_prompt: str | None = None) -> Any:
        """Return the model's reply parsed as JSON.

        Raises:
            ProviderUnavailableError: If the backend fails or the reply is not JSON.
        """
        reply = await self._chat(self._build_messages(prompt, system_prompt))
        cleaned = _CODE_FENCE.sub("", reply.strip())
        if not cleaned:
            return []
        try:
            return json.loads(cleaned)
        except json.JSONDecodeError as exc:
            self.logging.warning("Generative backend returned non-JSON reply: %r", reply[:200])
            raise ProviderUnavailableError("Generative backend returned invalid JSON.") from exc

    ##########################################
    ############### HELPERS ##################
    ##########################################

    def _build_messages(self, prompt: str, system_prompt: str | None) -> list[dict]:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})
        return messages

    async def _chat(self, messages: list[dict]) -> str:
        try:
            return await self._llm_client.do_chat(messages, json_mode=True)
        except httpx.HTTPError as exc:
            raise ProviderUnavailableError(f"Generative backend unreachable: {exc}") from exc
        except Exception as exc:
            raise ProviderUnavailableError(f"Generation request failed: {exc}") from exc
