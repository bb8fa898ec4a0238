"""System prompts for the LLM agents."""
