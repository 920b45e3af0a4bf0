"""crawlforge - AI-assisted crawler synthesis for job boards."""

__version__ = "0.1.0"
