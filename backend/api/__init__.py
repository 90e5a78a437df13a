"""HTTP service exposing the clip queue."""
