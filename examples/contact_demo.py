# examples/contact_demo.py
# Run with: python examples/contact_demo.py
#
# Publishes two "contact" messages on a fresh feed and prints them.

import time

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from ssb_publish import Contact, Feed, Multikey


def now_ms() -> float:
    return float(int(time.time() * 1000))


# =============================================================================
# Keys are the host application's business: make a throwaway pair here
# =============================================================================

def throwaway_keys():
    private = Ed25519PrivateKey.generate()
    seed = private.private_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PrivateFormat.Raw,
        encryption_algorithm=serialization.NoEncryption(),
    )
    public = private.public_key().public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )
    return public, seed + public


# =============================================================================
# DEMO
# =============================================================================

if __name__ == "__main__":
    public, secret = throwaway_keys()
    friend = Multikey.from_legacy("@9Zf0se86PotjNqaOt9ue8BNBLkGVLQcLNDw/pRQHY3U=.ed25519")

    feed = Feed()
    feed.append(Contact(contact=friend, following=True), public, secret, now_ms())
    feed.append(Contact(contact=friend, following=False), public, secret, now_ms())

    for entry in feed.get_chain():
        print(entry.key)
        print(entry.data.decode("utf-8"))
        print("-" * 90)
