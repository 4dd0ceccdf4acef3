"""SmartCall REST API adapter."""
