"""Per-engine registries: functions, schemas and the live field tree."""
