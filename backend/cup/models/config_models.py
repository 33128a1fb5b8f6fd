"""
Configuration Models for Cup
Pydantic models for the JSON config file (version 3)
"""

import re
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, ValidationInfo, field_validator, model_validator

from cup.utils.duration_parser import parse_refresh_interval
from cup.version import VersionType


class UpdateType(str, Enum):
    """Version update levels that can be ignored"""
    NONE = "none"
    MAJOR = "major"
    MINOR = "minor"
    PATCH = "patch"


class Theme(str, Enum):
    DEFAULT = "default"
    BLUE = "blue"


class MatchType(str, Enum):
    """How an image override's `match` string is compared with a reference"""
    EXACT = "exact"
    PREFIX = "prefix"
    SUFFIX = "suffix"
    CONTAINS = "contains"
    REGEX = "regex"


class RegistryConfig(BaseModel):
    """Per-registry settings, keyed by registry host in the config file"""
    model_config = ConfigDict(extra='forbid')

    authentication: Optional[str] = None  # base64 "username:password"
    insecure: bool = False  # Use http:// instead of https://
    ignore: bool = False  # Skip every image from this registry


class ImageOverride(BaseModel):
    """Selects the version scheme for the images whose reference matches"""
    model_config = ConfigDict(extra='forbid')

    match: str = Field(..., min_length=1)
    match_type: MatchType = MatchType.PREFIX
    version_type: VersionType = VersionType.AUTO
    regex: Optional[str] = None

    _matcher: Optional[re.Pattern] = PrivateAttr(default=None)

    @field_validator('match_type')
    @classmethod
    def validate_match_regex(cls, v: MatchType, info: ValidationInfo) -> MatchType:
        """Reject regex matchers that do not compile so mistakes surface when the config loads"""
        if v == MatchType.REGEX and 'match' in info.data:
            try:
                re.compile(info.data['match'])
            except re.error as e:
                raise ValueError(f"Invalid match regex {info.data['match']!r}: {e}")
        return v

    @model_validator(mode='after')
    def validate_version_regex(self) -> 'ImageOverride':
        if self.version_type == VersionType.EXTENDED and not self.regex:
            raise ValueError("version_type 'extended' requires a regex")
        return self

    def model_post_init(self, __context) -> None:
        if self.match_type == MatchType.REGEX:
            self._matcher = re.compile(self.match)

    def matches(self, reference: str) -> bool:
        if self.match_type == MatchType.EXACT:
            return reference == self.match
        if self.match_type == MatchType.PREFIX:
            return reference.startswith(self.match)
        if self.match_type == MatchType.SUFFIX:
            return reference.endswith(self.match)
        if self.match_type == MatchType.CONTAINS:
            return self.match in reference
        return self._matcher.search(reference) is not None


class ImageConfig(BaseModel):
    """Image selection: extra references to check, excluded prefixes, scheme overrides"""
    extra: List[str] = Field(default_factory=list)
    exclude: List[str] = Field(default_factory=list)
    overrides: List[ImageOverride] = Field(default_factory=list)


class CupConfig(BaseModel):
    """Top-level config file"""
    model_config = ConfigDict(extra='ignore')

    version: int = 3
    agent: bool = False
    ignore_update_type: UpdateType = UpdateType.NONE
    images: ImageConfig = Field(default_factory=ImageConfig)
    refresh_interval: Optional[str] = None
    registries: Dict[str, RegistryConfig] = Field(default_factory=dict)
    servers: Dict[str, str] = Field(default_factory=dict)
    socket: Optional[str] = None
    theme: Theme = Theme.DEFAULT

    @field_validator('version')
    @classmethod
    def validate_version(cls, v: int) -> int:
        if v != 3:
            raise ValueError(f"Unsupported config version {v}, expected 3")
        return v

    @field_validator('refresh_interval')
    @classmethod
    def validate_refresh_interval(cls, v: Optional[str]) -> Optional[str]:
        """Reject intervals the scheduler cannot parse"""
        if v:
            parse_refresh_interval(v)
        return v or None

    @field_validator('servers')
    @classmethod
    def validate_servers(cls, v: Dict[str, str]) -> Dict[str, str]:
        for name, url in v.items():
            if not url.startswith(("http://", "https://")):
                raise ValueError(f"Server {name!r} must have an http(s) URL, got {url!r}")
        return {name: url.rstrip("/") for name, url in v.items()}
