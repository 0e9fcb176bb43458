"""Configuration, data models, credentials and file helpers."""
