"""Configuration — declaration loading and manager path resolution."""
