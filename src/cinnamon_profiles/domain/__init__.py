"""Domain layer: profiles, backups and component selection."""
