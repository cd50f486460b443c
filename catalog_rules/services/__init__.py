"""Entity validators, lifecycles and the version and collaboration services."""
