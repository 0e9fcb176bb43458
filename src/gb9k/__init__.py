"""gb9k: bundle code into prompts and chat with LLMs from a markdown file."""

__version__ = "0.3.0"
