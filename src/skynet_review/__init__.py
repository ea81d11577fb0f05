"""Skynet Review — AI-powered security review of source changes."""

__version__ = "0.1.0"
