#!/usr/bin/env python3
"""
Generate an RSA key pair for JWT signing and print it as environment variables.
"""

import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from services.auth import generate_key_pair


if __name__ == "__main__":
    private_key, public_key = generate_key_pair()

    newline = "\\n"
    print(f'JWT_PRIVATE_KEY="{private_key.replace(chr(10), newline)}"')
    print(f'JWT_PUBLIC_KEY="{public_key.replace(chr(10), newline)}"')
