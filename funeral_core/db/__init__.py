"""Database layer: engine, session, versioned models."""
