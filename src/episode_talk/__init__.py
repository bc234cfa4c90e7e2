"""episode-talk-server: Japanese comedic episode talks generated by an LLM."""

__version__ = "1.0.0"
