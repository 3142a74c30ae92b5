"""Readers that turn external sources into page content."""
