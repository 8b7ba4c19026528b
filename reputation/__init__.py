"""Online Reputation Analyzer: SEO, review and AI signals combined into one score."""

__version__ = "1.0.0"
