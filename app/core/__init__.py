"""Settings (pydantic-settings) and the lazily built database session factory."""
