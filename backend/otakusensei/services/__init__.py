"""Domain services and clients for external collaborators."""
