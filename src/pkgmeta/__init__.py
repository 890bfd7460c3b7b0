"""Package metadata updater.

Maintains the package dependency graph in a key-value store and cascades
rebuilds to consumers when a package changes.
"""

__version__ = "0.1.0"
