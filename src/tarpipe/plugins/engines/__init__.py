"""
Built-in engine plugins. Modules register themselves with
:data:`tarpipe.plugins.registry.hub` on import.
"""
