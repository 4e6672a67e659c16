"""Command-line entry point for the dead-link checker."""
