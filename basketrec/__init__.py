"""Co-purchase recommendations mined from store sales with Apriori."""

__version__ = "1.0.0"
