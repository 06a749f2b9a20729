from __future__ import annotations

import abc
import os
import re
import time
import uuid
import logging


logger = logging.getLogger(__name__)


_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9._-]")


class ObjectStore(abc.ABC):
    @abc.abstractmethod
    async def upload(self, data: bytes, key: str, content_type: str) -> str:
        """Store `data` under `key` and return its public location."""
        ...


def safe_file_name(name: str) -> str:
    """Basename of `name` with every character outside [A-Za-z0-9._-] replaced by '_'."""
    candidate = os.path.basename((name or "").replace("\\", "/")).strip()
    candidate = _UNSAFE_KEY_CHARS.sub("_", candidate).lstrip(".")
    return candidate or "image"


def build_object_key(prefix: str, filename: str) -> str:
    """
    Build `<prefix>/<epoch-millis>-<token>-<filename>`.

    The random token keeps keys unique when two uploads of the same
    filename land in the same millisecond.
    """
    millis = int(time.time() * 1000)
    token = uuid.uuid4().hex[:12]
    name = f"{millis}-{token}-{safe_file_name(filename)}"
    prefix = prefix.strip("/")
    return f"{prefix}/{name}" if prefix else name
