"""Service layer of the Marco bridge."""
