"""Domain layer — value model, paths, and the four engines.

This layer depends only on stdlib and pydantic.
It must never import from services, infrastructure, commands, or config.
"""
