"""Core types, errors, events, lifecycle and input pipelines."""
