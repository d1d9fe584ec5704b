"""CLI command modules for geolayer."""
