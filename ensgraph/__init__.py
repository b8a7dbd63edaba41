"""ENS profile resolution and social graph tooling."""

__version__ = "0.3.0"
