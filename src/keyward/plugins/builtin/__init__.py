"""Built-in plugins shipped with keyward."""
