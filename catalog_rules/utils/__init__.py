"""Field-level validators."""
