"""Prompt file format: parser and append protocol."""
