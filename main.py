#!/usr/bin/env python3
"""
Main entry point for the network diagnostics tool.
This script serves as a wrapper around the netkit package's main function.
"""

import sys

from netkit.main import main

if __name__ == "__main__":
    sys.exit(main())
