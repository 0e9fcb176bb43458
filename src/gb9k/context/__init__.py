"""Context files: discovery and assembly."""
