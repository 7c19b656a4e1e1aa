"""Document engine: part store, lazy cache and sheet-level operations."""
