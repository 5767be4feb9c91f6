"""GrowthYari backend - expert sessions and professional connections."""

__version__ = "1.0.0"
