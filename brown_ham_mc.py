#!/usr/bin/env python3
"""
Brown–Ham precipitate cutting-stress Monte Carlo tool.

This script is a thin wrapper around the ``brown_ham_mc`` package.
All logic lives in brown_ham_mc/ so that ``python brown_ham_mc.py run ...``
and ``python -m brown_ham_mc run ...`` behave the same.
"""

from brown_ham_mc.cli import main

if __name__ == "__main__":
    main()
