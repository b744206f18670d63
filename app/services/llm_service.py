import asyncio
import logging
import random
from datetime import datetime, timezone
from typing import Dict, List, Optional

from google import genai
from google.genai import types
from google.genai import errors as genai_errors
from google.api_core import exceptions as google_exceptions

from app.core.exceptions import LLMServiceError

logger = logging.getLogger(__name__)

__all__ = ['LlmService', 'FALLBACK_RESPONSES']

FALLBACK_RESPONSES = [
    "Sorry, I'm having some connection issues. Can we try again in a moment?",
    "I apologize for the delay in responding. My connection seems unstable right now.",
    "Oh no, I'm having some technical difficulties. Please bear with me!",
    "I'm experiencing some network problems. I'll be back with you shortly!",
    "Sorry for the interruption. Let me try to fix my connection.",
]


class LlmService:
    """
    Thin client for the hosted chat-completion provider (Google GenAI).

    Takes an OpenAI-style message list (system/user/assistant) and returns the
    reply text.
    """
    def __init__(
        self,
        api_key: Optional[str],
        default_model: str,
        max_output_tokens: int = 350,
        temperature: float = 1.0,
        top_p: float = 0.95,
        history_turns: int = 12,
        client=None,
    ):
        """
        Initializes the LlmService.

        Args:
            api_key: Google API key. Without it (and without `client`) every
                generation raises LLMServiceError and callers fall back.
            default_model: Model name used for generation.
            max_output_tokens, temperature, top_p: Sampling parameters.
            history_turns: How many previous turns are forwarded to the model.
            client: Pre-built client, mainly for tests.

        Raises:
            ConnectionError: If initialization of the Google GenAI Client fails.
        """
        self.default_model = default_model
        self.max_output_tokens = max_output_tokens
        self.temperature = temperature
        self.top_p = top_p
        self.history_turns = history_turns

        logger.info(f"Initializing LlmService with default_model='{self.default_model}'")

        if client is not None:
            self.client = client
        elif api_key:
            try:
                self.client = genai.Client(api_key=api_key)
            except Exception as e:
                logger.error(f"Failed to initialize Google GenAI Client: {e}", exc_info=True)
                raise ConnectionError(f"Failed to initialize Google GenAI Client: {e}") from e
        else:
            logger.warning("No LLM API key configured, chat replies will use fallback messages.")
            self.client = None

    # --- Prompt assembly ---

    @staticmethod
    def build_system_message(character, now: Optional[datetime] = None) -> str:
        now = now or datetime.now(timezone.utc)
        lines = [
            f"You are {character.name}. {character.description or ''}".strip(),
            f"Your personality is {character.personality}.",
        ]
        if getattr(character, "age", None):
            lines.append(f"Your age: {character.age}.")
        if getattr(character, "location", None):
            lines.append(f"You live in {character.location}.")
        if getattr(character, "traits", None):
            lines.append(f"Traits: {', '.join(character.traits)}.")
        if getattr(character, "interests", None):
            lines.append(f"Interests: {', '.join(character.interests)}.")
        lines.append(f"Current date and time: {now.strftime('%A, %d %B %Y %H:%M')} UTC.")
        lines.append("Stay in character and reply in the language the user writes in.")
        return "\n".join(lines)

    def build_messages(self, character, message: str, conversation: Optional[List[Dict]] = None) -> List[Dict]:
        """System message, the most recent turns, then the new user message."""
        history = list(conversation or [])[-self.history_turns:] if self.history_turns > 0 else []
        return [
            {"role": "system", "content": self.build_system_message(character)},
            *history,
            {"role": "user", "content": message},
        ]

    @staticmethod
    def _to_contents(messages: List[Dict]):
        system_parts = []
        contents = []
        for msg in messages:
            role = msg.get("role", "user")
            text = msg.get("content", "")
            if role == "system":
                system_parts.append(text)
                continue
            contents.append(types.Content(
                role="model" if role == "assistant" else "user",
                parts=[types.Part(text=text)],
            ))
        return "\n\n".join(system_parts) or None, contents

    # --- Provider calls ---

    async def generate_reply(self, messages: List[Dict], model: Optional[str] = None) -> str:
        """
        Sends a message list to the provider and returns the reply text.

        Raises:
            LLMServiceError: The provider is unconfigured, failed, or returned no text.
        """
        if self.client is None:
            raise LLMServiceError("LLM client is not configured", operation="generate")

        effective_model = model or self.default_model
        system_instruction, contents = self._to_contents(messages)
        config = types.GenerateContentConfig(
            system_instruction=system_instruction,
            max_output_tokens=self.max_output_tokens,
            temperature=self.temperature,
            top_p=self.top_p,
        )
        logger.debug(f"Generating reply with model={effective_model}, {len(contents)} turns")

        try:
            # Use asyncio.to_thread for the blocking SDK call
            response = await asyncio.to_thread(
                self.client.models.generate_content,
                model=effective_model,
                contents=contents,
                config=config,
            )
        except (google_exceptions.GoogleAPIError, genai_errors.APIError) as api_err:
            logger.error(f"Google API Error during generation with {effective_model}: {api_err}", exc_info=True)
            raise LLMServiceError(f"LLM API Error: {api_err}", operation="generate") from api_err
        except Exception as e:
            logger.error(f"Unexpected error generating content with {effective_model}: {e}", exc_info=True)
            raise LLMServiceError(f"LLM generation failed: {e}", operation="generate") from e

        text_response = getattr(response, "text", None)
        if not text_response:
            logger.warning(f"LLM response did not contain text. Response: {response}")
            raise LLMServiceError("LLM returned an empty response", operation="generate")
        return text_response.strip()

    async def generate_character_response(
        self,
        character,
        message: str,
        conversation: Optional[List[Dict]] = None,
    ) -> Dict:
        """
        Replies as `character`. Provider failures never surface to the user:
        a canned message is returned with `fallback=True` instead.
        """
        messages = self.build_messages(character, message, conversation)
        try:
            reply = await self.generate_reply(messages)
            logger.info(f"Generated response for character {character.name} ({character.id})")
            return {"response": reply, "fallback": False}
        except LLMServiceError as e:
            logger.error(f"Error generating response for character {character.id}, using fallback: {e}")
            return {"response": random.choice(FALLBACK_RESPONSES), "fallback": True}

    async def list_models(self) -> List[str]:
        if self.client is None:
            raise LLMServiceError("LLM client is not configured", operation="list_models")
        try:
            models = await asyncio.to_thread(lambda: list(self.client.models.list()))
        except Exception as e:
            logger.error(f"Error fetching available models: {e}", exc_info=True)
            raise LLMServiceError(f"Failed to fetch available models: {e}", operation="list_models") from e
        return [getattr(m, "name", str(m)) for m in models]

    async def check_health(self) -> Dict:
        timestamp = datetime.now(timezone.utc).isoformat()
        if self.client is None:
            return {"status": "unconfigured", "model": self.default_model, "timestamp": timestamp}
        try:
            await self.list_models()
            return {"status": "healthy", "model": self.default_model, "timestamp": timestamp}
        except LLMServiceError as e:
            logger.error(f"LLM health check failed: {e}")
            return {"status": "unhealthy", "model": self.default_model, "timestamp": timestamp, "error": str(e)}
