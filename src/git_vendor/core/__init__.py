"""Core vendoring logic: manifest model, tree filter, fetch and merge."""
