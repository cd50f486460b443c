"""Settings, logging and validation primitives."""
