"""Backend, credential and token-storage services."""
