"""Service layer: card codec, import/export, and the local character library."""
