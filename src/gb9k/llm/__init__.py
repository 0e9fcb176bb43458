"""OpenRouter API client and model directory."""
