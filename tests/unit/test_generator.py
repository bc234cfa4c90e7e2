"""Tests for the model invoker."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from episode_talk.config import GenerationSettings, OpenAISettings, Settings
from episode_talk.core.generator import (
    JSON_OBJECT_FORMAT,
    EpisodeGenerator,
    compute_max_tokens,
    create_generator,
)
from episode_talk.core.prompts import PromptPair
from episode_talk.utils.errors import GenerationTimeoutError, ProviderError

PROMPTS = PromptPair(system="system instruction", user="user instruction")


@pytest.fixture
def settings():
    """Settings with a short deadline."""
    return Settings(
        openai=OpenAISettings(api_key="sk-test"),
        generation=GenerationSettings(timeout_seconds=0.05),
    )


def make_agent(run) -> MagicMock:
    agent = MagicMock()
    agent.run = run
    return agent


class TestComputeMaxTokens:
    """Tests for compute_max_tokens function."""

    def test_monotonic(self):
        """Test the budget never decreases as length grows."""
        budgets = [compute_max_tokens(length, 4096) for length in range(50, 2001, 50)]
        assert budgets == sorted(budgets)

    def test_clamped(self):
        """Test the budget never exceeds the cap."""
        assert compute_max_tokens(2000, 4096) == 4096
        assert compute_max_tokens(50, 300) == 300

    def test_default_length(self):
        """Test the budget for the default length."""
        assert compute_max_tokens(350, 4096) == 1450


class TestBuildModelSettings:
    """Tests for sampling parameters."""

    def test_structured(self, settings):
        """JSON mode requests a JSON object response."""
        model_settings = EpisodeGenerator(settings).build_model_settings(1000, True)

        assert model_settings["temperature"] == 0.9
        assert model_settings["top_p"] == 0.95
        assert model_settings["max_tokens"] == 1000
        assert model_settings["extra_body"] == {"response_format": JSON_OBJECT_FORMAT}

    def test_free_text_without_top_p(self):
        """Test optional parameters are omitted when unset."""
        settings = Settings(
            openai=OpenAISettings(api_key="sk-test"),
            generation=GenerationSettings(top_p=None, temperature=0.7),
        )
        model_settings = EpisodeGenerator(settings).build_model_settings(500, False)

        assert model_settings["temperature"] == 0.7
        assert "top_p" not in model_settings
        assert "extra_body" not in model_settings


class TestGenerate:
    """Tests for EpisodeGenerator.generate."""

    @pytest.mark.asyncio
    async def test_returns_output(self, settings):
        """Test the agent output is returned."""
        generator = EpisodeGenerator(settings)
        run = AsyncMock(return_value=MagicMock(output='{"title": "t"}'))

        with patch.object(generator, "create_agent", return_value=make_agent(run)) as create:
            raw = await generator.generate(PROMPTS, 800)

        assert raw == '{"title": "t"}'
        create.assert_called_once_with("system instruction")
        run.assert_awaited_once()
        assert run.await_args.args == ("user instruction",)
        assert run.await_args.kwargs["model_settings"]["max_tokens"] == 800

    @pytest.mark.asyncio
    async def test_single_call_no_retry_on_failure(self, settings):
        """A provider failure is reported after exactly one call."""
        generator = EpisodeGenerator(settings)
        run = AsyncMock(side_effect=RuntimeError("quota exceeded"))

        with patch.object(generator, "create_agent", return_value=make_agent(run)):
            with pytest.raises(ProviderError, match="quota exceeded"):
                await generator.generate(PROMPTS, 800)

        assert run.await_count == 1

    @pytest.mark.asyncio
    async def test_timeout(self, settings):
        """The deadline raises a timeout error and leaves nothing pending."""
        generator = EpisodeGenerator(settings)
        cancelled = asyncio.Event()

        async def slow_run(*args, **kwargs):
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.set()
                raise

        with patch.object(generator, "create_agent", return_value=make_agent(slow_run)):
            with pytest.raises(GenerationTimeoutError):
                await generator.generate(PROMPTS, 800)

        assert cancelled.is_set()
        pending = [task for task in asyncio.all_tasks() if task is not asyncio.current_task()]
        assert pending == []

    @pytest.mark.asyncio
    async def test_timeout_is_not_provider_error(self, settings):
        """Test the timeout condition is distinguishable."""
        generator = EpisodeGenerator(settings)

        async def slow_run(*args, **kwargs):
            await asyncio.sleep(10)

        with patch.object(generator, "create_agent", return_value=make_agent(slow_run)):
            with pytest.raises(GenerationTimeoutError) as exc_info:
                await generator.generate(PROMPTS, 800)

        assert not isinstance(exc_info.value, ProviderError)
        assert exc_info.value.status_code == 504


class TestCreateGenerator:
    """Tests for create_generator factory."""

    def test_uses_configured_model(self, settings):
        """Test the configured model name is used."""
        assert create_generator(settings).model_name == "gpt-4o-mini"

    def test_model_override(self, settings):
        """Test the model name can be overridden."""
        assert create_generator(settings, model_name="gpt-4o").model_name == "gpt-4o"

    def test_create_agent_carries_system_prompt(self, settings):
        """Test the agent is built with the system instruction."""
        generator = create_generator(settings)
        with patch("episode_talk.core.generator.Agent") as agent_class:
            generator.create_agent("system instruction")
        agent_class.assert_called_once_with(generator.model, system_prompt="system instruction")
