"""Conversational command and flow engine."""
