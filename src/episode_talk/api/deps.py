"""Dependency injection for API handlers."""

import random
from typing import Annotated

from fastapi import Depends, Request

from episode_talk.config import Settings, get_settings
from episode_talk.core.prompts import RandomSource


def get_settings_dependency() -> Settings:
    """Get application settings.

    This is a thin wrapper around get_settings() to allow for
    easier testing via dependency override.
    """
    return get_settings()


SettingsDep = Annotated[Settings, Depends(get_settings_dependency)]


def get_random_source() -> RandomSource:
    """Random source for the per-request style toggle.

    Override in tests to pin the toggle.
    """
    return random


RandomDep = Annotated[RandomSource, Depends(get_random_source)]


def get_request_id(request: Request) -> str | None:
    """Extract request ID from request state.

    The request ID is set by the access log middleware.
    """
    return getattr(request.state, "request_id", None)


RequestIdDep = Annotated[str | None, Depends(get_request_id)]
