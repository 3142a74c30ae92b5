"""Command line interface for siteqa."""
