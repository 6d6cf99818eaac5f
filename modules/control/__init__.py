"""User-facing confirmations."""
