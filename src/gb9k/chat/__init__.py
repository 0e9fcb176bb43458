"""Chat runs: stream a reply into the prompt file and reconcile usage.

The prompt file is the interface: the conversation is read from it and the
assistant's reply is written back into it as it arrives.
"""
