"""Generate social card designs for blog posts with LLMs."""

__version__ = "0.4.0"
