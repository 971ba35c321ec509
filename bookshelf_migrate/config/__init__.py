"""Configuration models and YAML/environment loading."""
