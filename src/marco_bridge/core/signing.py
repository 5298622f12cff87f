"""Signing secret used to mint bridge tokens."""

from __future__ import annotations

import logging
import os
import secrets
from pathlib import Path

from marco_bridge.core.settings import Settings, settings

logger = logging.getLogger(__name__)

SECRET_BYTES = 32


def load_signing_secret(config: Settings | None = None) -> str:
    """Return the process-wide signing secret.

    The secret comes from SIGNING_SECRET when set. Otherwise it is read from
    the secret file, which is generated on first use and never rewritten.
    Replacing the file invalidates every outstanding bridge token.
    """
    config = config or settings
    if config.signing_secret:
        return config.signing_secret

    path = Path(config.effective_signing_secret_path)
    if path.exists():
        secret = path.read_text(encoding="utf-8").strip()
        if secret:
            logger.debug("Restored signing secret from %s", path)
            return secret

    logger.info("Generating new signing secret at %s", path)
    path.parent.mkdir(parents=True, exist_ok=True)
    secret = secrets.token_urlsafe(SECRET_BYTES)
    path.write_text(secret + "\n", encoding="utf-8")
    os.chmod(path, 0o600)
    return secret
