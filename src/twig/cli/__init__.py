"""Command-line interface for Twig."""
