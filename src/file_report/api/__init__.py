"""HTTP event intake."""
