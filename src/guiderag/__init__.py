"""GuideRAG: term-weight retrieval over a local guide corpus."""

__version__ = "0.1.0"
