"""Prompt building, model invocation and output normalization."""
