"""Run configuration: schema, YAML loading and environment variables."""
