"""Local credential storage adapters."""
