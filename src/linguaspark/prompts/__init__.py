"""Prompt builders for context analysis and lesson sections."""
