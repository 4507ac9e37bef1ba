"""revctl: path-based code-review policy tracked in git notes."""

__version__ = "0.4.0"
