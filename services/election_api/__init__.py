"""Election API: create, fetch, validate and delete elections."""
