"""Package container, atomic writes, backups and file locks."""
