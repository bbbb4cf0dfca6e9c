"""Services around the rating engine: sessions, storage, catalog, reporting."""
