"""Seal secret values for the secrets API.

The remote platform only accepts secret values encrypted with a libsodium
sealed box against the environment's public key. Values are never sent
in plain or merely encoded form.
"""

from __future__ import annotations

import base64

from nacl import encoding, public

from envdeck.github.models import PublicKey


def seal_secret(value: str, public_key: PublicKey) -> str:
    """Encrypt ``value`` for ``public_key`` and return it base64-encoded."""
    key = public.PublicKey(public_key.key.encode("utf-8"), encoding.Base64Encoder())
    sealed = public.SealedBox(key).encrypt(value.encode("utf-8"))
    return base64.b64encode(sealed).decode("utf-8")
