"""BrandMind API: accounts, subscriptions and AI content generation."""

__version__ = "1.0.0"
