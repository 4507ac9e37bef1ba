"""Infrastructure layer: git plumbing, annotation namespaces, tracker client.

This layer depends on stdlib and third-party libs (requests).
Domain models are used only for (de)serialisation; it must never import
from services, commands, or output.
"""
