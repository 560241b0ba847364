"""Application layer: configuration, storage bootstrap and front end."""
