"""Pydantic AI wrapper for the single provider call made per request."""

import asyncio
import logging

from pydantic_ai import Agent
from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.providers.openai import OpenAIProvider
from pydantic_ai.settings import ModelSettings

from episode_talk.config import Settings
from episode_talk.core.prompts import PromptPair
from episode_talk.utils.errors import GenerationTimeoutError, ProviderError

logger = logging.getLogger(__name__)

# Completion budget: fixed overhead for the JSON envelope plus tokens per character
BASE_OUTPUT_TOKENS = 400
TOKENS_PER_CHARACTER = 3

JSON_OBJECT_FORMAT = {"type": "json_object"}


def compute_max_tokens(length: int, cap: int) -> int:
    """Derive the completion budget from the requested length.

    Monotonic in ``length`` and never above ``cap``.
    """
    return min(cap, BASE_OUTPUT_TOKENS + TOKENS_PER_CHARACTER * length)


class EpisodeGenerator:
    """Wrapper around a Pydantic AI Agent for episode generation.

    Provides:
    - OpenAI model configuration from settings
    - Exactly one model call per ``generate`` invocation, no retries
    - Deadline enforcement with a distinct timeout error
    """

    def __init__(
        self,
        settings: Settings,
        model_name: str | None = None,
    ):
        """Initialize the generator.

        Args:
            settings: Application settings.
            model_name: Optional model name override. If not provided, uses
                       settings.generation.model.
        """
        self.settings = settings
        self.model_name = model_name or settings.generation.model
        self.timeout_seconds = settings.generation.timeout_seconds

        provider = OpenAIProvider(
            base_url=settings.openai.base_url,
            api_key=settings.openai.api_key,
        )
        self.model = OpenAIChatModel(self.model_name, provider=provider)

    def create_agent(self, system_prompt: str) -> Agent:
        """Create the agent for one call, carrying the system instruction."""
        return Agent(self.model, system_prompt=system_prompt)

    def build_model_settings(self, max_tokens: int, json_output: bool) -> ModelSettings:
        """Sampling parameters for one call."""
        generation = self.settings.generation
        model_settings = ModelSettings(
            temperature=generation.temperature,
            max_tokens=max_tokens,
        )
        if generation.top_p is not None:
            model_settings["top_p"] = generation.top_p
        if json_output:
            model_settings["extra_body"] = {"response_format": JSON_OBJECT_FORMAT}
        return model_settings

    async def generate(
        self,
        prompts: PromptPair,
        max_tokens: int,
        json_output: bool = True,
    ) -> str:
        """Run the model once and return its text.

        Args:
            prompts: System and user instructions.
            max_tokens: Completion budget.
            json_output: Whether to request a JSON object response.

        Returns:
            The raw text produced by the model.

        Raises:
            GenerationTimeoutError: If the deadline expires before the call completes.
            ProviderError: If the call fails for any other reason.
        """
        model_settings = self.build_model_settings(max_tokens, json_output)
        agent = self.create_agent(prompts.system)

        # wait_for cancels and awaits the run on expiry, so nothing outlives this call
        try:
            result = await asyncio.wait_for(
                agent.run(prompts.user, model_settings=model_settings),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"Generation timed out after {self.timeout_seconds}s (model={self.model_name})"
            )
            raise GenerationTimeoutError(
                f"Generation timed out after {self.timeout_seconds:g} seconds"
            )
        except Exception as e:
            logger.exception("Error during generation run")
            raise ProviderError(str(e) or type(e).__name__) from e

        output = result.output
        return output if isinstance(output, str) else str(output)


def create_generator(
    settings: Settings,
    model_name: str | None = None,
) -> EpisodeGenerator:
    """Create a new EpisodeGenerator instance.

    Args:
        settings: Application settings.
        model_name: Optional model name override.

    Returns:
        Configured EpisodeGenerator instance.
    """
    return EpisodeGenerator(settings, model_name)
