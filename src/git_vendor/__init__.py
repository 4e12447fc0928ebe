"""
git-vendor - in-source vendoring for Git repositories

Vendored dependencies are declared as attribute lines in ``.gitattributes``,
fetched into ``refs/vendor/`` and merged into the working tree, restricted
to the paths each dependency's pattern selects.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
