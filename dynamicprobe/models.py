from __future__ import annotations

import re
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from dynamicprobe.config import settings

_CAMEL_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")


def snake_key(key: str) -> str:
    """``ContentRegex`` -> ``content_regex``; snake_case keys pass through."""
    return _CAMEL_BOUNDARY.sub(r"\1_\2", key).lower()


def _folded(key: str) -> str:
    return key.replace("_", "").lower()


class CheckConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    name: str = ""
    group: str = ""
    score_weight: float = 1.0


class Definition(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", coerce_numbers_to_str=True)

    @classmethod
    def normalize_keys(cls, raw: Dict[str, Any]) -> Dict[str, Any]:
        """
        Map raw document keys onto field names, ignoring case and underscores.

        ``ContentRegex``, ``content_regex``, ``contentregex`` and
        ``CONTENTREGEX`` all land on ``content_regex``. Keys that match no
        field are passed through snake_cased and then ignored.
        """
        fields = {_folded(name): name for name in cls.model_fields}
        return {
            fields.get(_folded(str(k)), snake_key(str(k))): v for k, v in raw.items()
        }


class SSHDefinition(Definition):
    host: str = ""
    username: str = ""
    password: str = ""
    cmd: str = ""
    match_content: bool = False
    content_regex: str = ".*"
    port: str = "22"


class VNCDefinition(Definition):
    host: str = ""
    password: str = ""
    port: str = "5900"


class TCPDefinition(Definition):
    host: str = ""
    port: str = ""


class HTTPDefinition(Definition):
    url: str = ""
    method: str = "GET"
    expected_status: int = 200
    verify: bool = True
    match_content: bool = False
    content_regex: str = ".*"


class Defaults(BaseModel):
    timeout_s: float = Field(default_factory=lambda: settings.CHECK_TIMEOUT_S)
    score_weight: float = 1.0


class CheckEntry(BaseModel):
    id: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1)
    name: str = ""
    group: str = ""
    score_weight: Optional[float] = None
    timeout_s: Optional[float] = Field(default=None, gt=0)
    definition: Dict[str, Any] = Field(default_factory=dict)


class Registry(BaseModel):
    defaults: Defaults = Field(default_factory=Defaults)
    checks: List[CheckEntry]
