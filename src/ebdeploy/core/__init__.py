"""Core primitives shared by every ebdeploy module: errors, results, logging, settings."""
