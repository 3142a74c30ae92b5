"""Core configuration, logging, errors and shared definitions."""
