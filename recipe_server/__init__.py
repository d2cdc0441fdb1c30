"""Recipe server package.

Exports for testing and module access.
"""

from recipe_server import lib, models

__version__ = '1.0.0'

__all__ = ['lib', 'models']
