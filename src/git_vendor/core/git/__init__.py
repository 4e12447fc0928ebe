"""Git-backed collaborators (object store, transport, working area).

Submodules are imported directly; this package keeps no eager imports so
that the core modules can depend on :mod:`.protocols` without cycles.
"""
