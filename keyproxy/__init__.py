"""Key-substituting HTTP reverse proxy."""
