"""Code shared between the clip queue services: models, engine, storage."""
