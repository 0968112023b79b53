"""Framework: clients, tools, cache and error taxonomy."""
