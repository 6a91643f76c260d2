#!/usr/bin/env python3
"""
Generate a Votifier RSA key pair in the plugin's on-disk format.
Writes:
  rsa/public.key   (base64 DER SubjectPublicKeyInfo)
  rsa/private.key  (base64 DER PKCS#8)
Usage: python scripts/gen_keys.py [out_dir] [bits]
"""
import os
import sys

from cryptography.hazmat.primitives.asymmetric import rsa

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from votifier.crypto.pki import export_private_key, export_public_key


def main():
    out_dir = sys.argv[1] if len(sys.argv) > 1 else "rsa"
    bits = int(sys.argv[2]) if len(sys.argv) > 2 else 2048
    os.makedirs(out_dir, exist_ok=True)

    key = rsa.generate_private_key(public_exponent=65537, key_size=bits)

    with open(os.path.join(out_dir, "private.key"), "w") as f:
        f.write(export_private_key(key))
    with open(os.path.join(out_dir, "public.key"), "w") as f:
        f.write(export_public_key(key.public_key()))

    print(f"Wrote {out_dir}/public.key and {out_dir}/private.key ({bits} bits)")


if __name__ == "__main__":
    main()
