"""YAML configuration for the henka CLI."""
