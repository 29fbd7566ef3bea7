"""
Xiaomi sensor bridge for Home Assistant.
Runs the bridge from a source checkout; installed copies use the
``xiaomi-bridge`` script or ``python -m xiaomi_bridge``.
"""

import sys

from xiaomi_bridge.cli import main

if __name__ == "__main__":
    sys.exit(main())
