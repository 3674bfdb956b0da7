# -*- coding: utf-8 -*-

"""
Main entry point for launching epub2cbz from a source checkout.
"""

import sys

from epub2cbz.cli import main

if __name__ == '__main__':
    sys.exit(main())
