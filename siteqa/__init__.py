"""siteqa: crawl a website into a vector store and answer questions about it."""

__version__ = "0.1.0"
