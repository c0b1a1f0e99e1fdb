"""Command-line interface for the development server."""
