"""Content discovery and aggregation engine.

Every component takes a :class:`~recipebox.lib.store.DocumentStore` handle in
its constructor.
"""
