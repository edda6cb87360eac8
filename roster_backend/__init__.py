"""Class-slot roster resolution and instructor assignment backend."""
__version__ = '1.0.0'
