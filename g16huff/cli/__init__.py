"""
g16huff.cli
-----------
Command-line entry points:

- generate : specialize a verifier program for a key (atomic writes)
- layout   : print the memory layout for n public inputs
- pack     : write the packed key
- inspect  : decode a packed key
- verify   : verify a proof in-process or on the metered machine

Usage:
  python -m g16huff.cli            # runs the app
  python -m g16huff.cli verify -h  # help for a subcommand
"""

from .main import app, main

__all__ = ["app", "main"]
