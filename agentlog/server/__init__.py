"""HTTP endpoints for browsing and streaming files from the data directory."""
