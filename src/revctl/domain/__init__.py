"""Domain layer: rules, scrutiny lattice, record formats, policy evaluation.

This layer depends only on stdlib and pydantic.
It must never import from services, infrastructure, commands, or config.
"""
