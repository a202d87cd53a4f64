"""Infrastructure layer — file formats and filesystem access.

This layer depends on stdlib, third-party libs (ruamel.yaml), and the
domain error types. It must never import from services, commands, or output.
"""
