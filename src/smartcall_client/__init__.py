"""SmartCall helpdesk client with a polling chat synchronization core."""
