"""
Typed helper wrapping Grok (xai-sdk) prompt generation for the dataset builder.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Optional

from pydantic import BaseModel, Field
from xai_sdk import Client
from xai_sdk.chat import user

from errors import SynthesisError

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "grok-4-1-fast"

# Fixed generation parameters for prompt synthesis
MAX_TOKENS = 300
TEMPERATURE = 0.5

GAP_MARKER = "%%%???%%%"


class PrecedingTurn(BaseModel):
    """Structured response: the turn that would lead to the given post."""
    message: str = Field(description="The missing dialogue that precedes Speaker 2's reply")


def build_gap_filling_prompt(text: str) -> str:
    """Build the conversation gap-filling instruction for a post."""
    return f"""**Conversation Gap Filling Task**

**Task Instructions**:
You are given a fragment of a conversation between two individuals, where a part of the dialogue is missing and marked with '{GAP_MARKER}'. Your task is to infer and generate the missing piece of dialogue that logically and conversationally fits into the marked position.

**Input Conversation**:
- Speaker 1:
{GAP_MARKER}
- Speaker 2:
{text}

**Output Requirements**:
- Fill in the '{GAP_MARKER}' with dialogue that would naturally lead to Speaker 2's response.
- The filled dialogue should be coherent, contextually appropriate, and maintain the flow of conversation.
- Consider any implied or explicit situational, emotional, or environmental cues that could influence the missing dialogue.

Ensure your completion maintains relevance to the context, is realistic for a casual conversation, and abides by general language usage norms.

In addition, please output the JSON format of the following example.

```json
{{
  "message": "Your response here"
}}
```
"""


class GrokAdapter:
    """
    Adapter for Grok API calls that synthesize a plausible preceding turn for a post.

    Constructed explicitly with its credential and model and handed to the
    dataset generator. Admission rate limiting is the caller's job.
    """

    def __init__(self, api_key: str, model: str = DEFAULT_MODEL, client: Optional[Client] = None) -> None:
        self.model = model
        self._client = client or Client(api_key=api_key)
        logger.info(f"GrokAdapter initialized with model {model}")

    def _structured_call(self, *, user_prompt: str, schema: type[BaseModel]) -> BaseModel:
        """
        Perform a structured chat call via xai-sdk.

        Raises:
            SynthesisError: if the call fails or the response does not match the schema
        """
        start_time_ms = time.time() * 1000

        try:
            chat = self._client.chat.create(
                model=self.model,
                max_tokens=MAX_TOKENS,
                temperature=TEMPERATURE,
            )
            chat.append(user(user_prompt))
            _, payload = chat.parse(schema)  # type: ignore[arg-type]

            latency_ms = (time.time() * 1000) - start_time_ms
            logger.debug(f"API call successful ({latency_ms:.0f}ms)")

        except Exception as e:
            latency_ms = (time.time() * 1000) - start_time_ms
            raise SynthesisError(f"Grok API call failed after {latency_ms:.0f}ms: {e}") from e

        if not isinstance(payload, schema):
            raise SynthesisError(f"Grok response did not match {schema.__name__}: {payload!r}")
        return payload

    def generate_prompt(self, text: str) -> str:
        """
        Generate a prompt that could plausibly have elicited ``text`` as a reply.

        Raises:
            SynthesisError: if the call fails or the response cannot be parsed
        """
        payload = self._structured_call(
            user_prompt=build_gap_filling_prompt(text),
            schema=PrecedingTurn,
        )
        return payload.message

    async def generate_prompt_async(self, text: str) -> str:
        """
        Async version of generate_prompt.
        Runs the blocking xai-sdk call in a thread pool to avoid blocking the event loop.
        """
        return await asyncio.to_thread(self.generate_prompt, text)


__all__ = [
    "GrokAdapter",
    "PrecedingTurn",
    "build_gap_filling_prompt",
    "DEFAULT_MODEL",
]
