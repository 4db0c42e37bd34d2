"""
Fixed sysctl tuning blocks.

Each module in this package describes one block of the generated
configuration file as a list of ``(title, [(key, value), ...])`` sections.
"""

__version__ = "1.0.0"
