"""
File operation samples for object storage, plus their integration harness
"""

__version__ = "1.0.0"
