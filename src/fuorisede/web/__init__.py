"""Chef Fuori-Sede Web API."""
