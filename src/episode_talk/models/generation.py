"""Episode generation request and response models."""

from pydantic import BaseModel, ConfigDict, Field

THEME_MAX_LENGTH = 200
GENRE_MAX_LENGTH = 100
CHARACTERS_MAX_LENGTH = 200

# Target body length, counted in characters
LENGTH_MIN = 50
LENGTH_MAX = 2000
DEFAULT_LENGTH = 350


class GenerationRequest(BaseModel):
    """Validated brief for one episode.

    Every field is optional on the wire. Out-of-range values are rejected,
    never clamped.
    """

    model_config = ConfigDict(strict=True, extra="ignore", frozen=True)

    theme: str = Field(
        default="",
        max_length=THEME_MAX_LENGTH,
        description="Topic of the episode",
    )
    genre: str = Field(
        default="",
        max_length=GENRE_MAX_LENGTH,
        description="Tone descriptor",
    )
    characters: str = Field(
        default="",
        max_length=CHARACTERS_MAX_LENGTH,
        description="Who appears in the episode",
    )
    length: int = Field(
        default=DEFAULT_LENGTH,
        ge=LENGTH_MIN,
        le=LENGTH_MAX,
        description="Target body length in characters",
    )


class GenerationMeta(BaseModel):
    """Narrative phases and comedic techniques found in (or declared for) the text."""

    structure: list[str] = Field(default_factory=list)
    techniques: list[str] = Field(default_factory=list)


class GenerationResult(BaseModel):
    """Response body when the model is asked for structured JSON output."""

    title: str
    body: str
    meta: GenerationMeta = Field(default_factory=GenerationMeta)
    note: str | None = Field(
        default=None,
        description="Advisory message, present only for degraded results",
    )


class FreeTextResult(BaseModel):
    """Response body when the model writes free text and meta is inferred."""

    text: str
    meta: GenerationMeta = Field(default_factory=GenerationMeta)
    note: str | None = None
