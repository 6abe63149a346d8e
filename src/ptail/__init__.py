"""
ptail: print the tail of files and follow them as they grow.
"""

from .version import __version__
