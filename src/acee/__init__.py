"""acee - automated code evolution engine.

Rewrites JavaScript functions with a language model and only keeps the
rewrites that still parse. Every mutated file is either validated or
restored byte-for-byte from its backup.
"""

__version__ = "0.1.0"
