"""Service layer — file IO plus one engine call, returning ServiceResult.

Services may import from domain, infrastructure, and config.
They must never import from commands or output.
"""
