"""Clients for the embedding service, vector store and answer cache."""
