"""testshard: balance test classes across parallel CI shards."""

__version__ = "0.4.0"
