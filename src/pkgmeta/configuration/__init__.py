"""Environment-driven settings for the metadata updater."""
