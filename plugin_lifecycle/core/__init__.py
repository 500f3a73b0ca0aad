"""Configuration for the plugin system."""
