# signing/logic/signature_vault.py
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable, List

from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)


class SignatureVault:
    """
    Encrypts signature images kept at rest while a certificate is pending.

    Keyring semantics:
    - first key is the current key (used for ENCRYPT),
    - remaining keys are legacy keys (used only for DECRYPT).
    """

    def __init__(self, keys: Iterable[bytes | str]) -> None:
        self._ferns: List[Fernet] = []
        for k in keys:
            raw = k.encode("ascii") if isinstance(k, str) else bytes(k)
            self._ferns.append(Fernet(raw))
        if not self._ferns:
            raise ValueError("SignatureVault needs at least one key.")

    @classmethod
    def ephemeral(cls) -> "SignatureVault":
        """Vault with a fresh in-memory key."""
        return cls([Fernet.generate_key()])

    @classmethod
    def from_key_file(cls, path: Path | str) -> "SignatureVault":
        """
        Load the keyring from ``path`` (one base64 key per line, current first).
        The file is created with a new key on first use.
        """
        p = Path(path)
        if not p.exists():
            p.parent.mkdir(parents=True, exist_ok=True)
            p.write_text(Fernet.generate_key().decode("ascii") + "\n", encoding="ascii")
            try:
                os.chmod(p, 0o600)
            except OSError:  # pragma: no cover
                logger.warning("Could not restrict permissions of %s", p)
            logger.info("Created signature vault key file %s", p)
        keys = [line.strip() for line in p.read_text(encoding="ascii").splitlines() if line.strip()]
        return cls(keys)

    def encrypt(self, data: bytes) -> str:
        return self._ferns[0].encrypt(data).decode("ascii")

    def decrypt(self, token: str | bytes) -> bytes:
        """
        Try the current key first, then legacy keys. Raises InvalidToken if
        none of them fits.
        """
        raw = token.encode("ascii") if isinstance(token, str) else token
        for f in self._ferns:
            try:
                return f.decrypt(raw)
            except InvalidToken:
                continue
        raise InvalidToken("Unable to decrypt retained signature")
