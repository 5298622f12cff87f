"""Appservice registration file handling.

The homeserver needs a registration file to know how to reach the bridge and
which users it controls. We generate one on first start and reuse it after.
See https://spec.matrix.org/latest/application-service-api/#registration
"""

from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from marco_bridge.core.settings import Settings, settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Registration:
    """Subset of the registration the bridge needs at runtime."""

    id: str
    as_token: str
    hs_token: str
    sender_localpart: str
    url: str
    user_regexes: tuple[str, ...] = field(default_factory=tuple)

    def is_exclusive_user(self, user_id: str) -> bool:
        """Return True if the user falls into our namespace."""
        return any(re.fullmatch(pattern, user_id) for pattern in self.user_regexes)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Registration":
        users = (data.get("namespaces") or {}).get("users") or []
        return cls(
            id=str(data["id"]),
            as_token=str(data["as_token"]),
            hs_token=str(data["hs_token"]),
            sender_localpart=str(data["sender_localpart"]),
            url=str(data.get("url", "")),
            user_regexes=tuple(str(entry["regex"]) for entry in users if "regex" in entry),
        )


def generate_registration(config: Settings | None = None) -> dict[str, Any]:
    """Build a fresh registration document with new tokens."""
    config = config or settings
    return {
        "id": uuid.uuid4().hex,
        "as_token": uuid.uuid4().hex,
        "hs_token": uuid.uuid4().hex,
        "url": f"http://localhost:{config.port}",
        "namespaces": {
            "aliases": [],
            "rooms": [],
            "users": [
                {
                    "exclusive": True,
                    "regex": f"@{re.escape(config.puppet_prefix)}.*",
                },
            ],
        },
        "protocols": ["minecraft"],
        "rate_limited": False,
        "sender_localpart": config.bot_localpart,
    }


def load_registration(config: Settings | None = None) -> Registration:
    """Read the registration file, generating it first if missing."""
    config = config or settings
    path = Path(config.effective_registration_path)

    if path.exists():
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        logger.debug("Restored appservice registration from %s", path)
        return Registration.from_dict(data)

    logger.info("Generating appservice registration at %s", path)
    data = generate_registration(config)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
    return Registration.from_dict(data)
