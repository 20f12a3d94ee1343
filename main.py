#!/usr/bin/env python3
"""Entry point for the Wormhole publisher.

Run from a checkout without installing:

    PRIVATE_KEY=0x... python main.py --message "HelloTest-1"
"""

import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(os.path.abspath(__file__)), "src"))

from wormhole_publisher.cli import run  # noqa: E402

if __name__ == "__main__":
    run()
