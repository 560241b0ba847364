"""Request handling services built on the reference store."""
