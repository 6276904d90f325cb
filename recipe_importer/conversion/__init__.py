"""LLM conversion of recipe text into schema.org/Recipe JSON."""
