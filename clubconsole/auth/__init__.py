"""Identity, role resolution, and authorization."""
