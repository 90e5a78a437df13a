"""Schema migrations for the clip queue database."""
