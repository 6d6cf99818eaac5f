"""Platform adapters and processing stages."""
