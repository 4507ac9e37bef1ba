"""Built-in plugins shipped with revctl."""
