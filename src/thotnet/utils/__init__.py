"""Shared utilities: text helpers and LLM JSON repair."""
