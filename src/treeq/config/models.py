"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, treeq.toml only contains overrides.
An empty (or absent) treeq.toml behaves exactly like the built-in defaults.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from treeq.domain.diff import DEFAULT_VALUE_DIFF_CAP
from treeq.domain.types import MergePolicy
from treeq.domain.values import DEFAULT_MAX_DEPTH


class CanonConfig(BaseModel):
    """[canon] section."""

    model_config = {"frozen": True}

    sort_keys: bool = True
    normalize_time: bool = False


class DiffConfig(BaseModel):
    """[diff] section."""

    model_config = {"frozen": True}

    value_diff_cap: int = Field(default=DEFAULT_VALUE_DIFF_CAP, ge=0)


class MergeConfig(BaseModel):
    """[merge] section."""

    model_config = {"frozen": True}

    policy: MergePolicy = MergePolicy.DEEP_MERGE


class EngineConfig(BaseModel):
    """[engine] section."""

    model_config = {"frozen": True}

    max_depth: int = Field(default=DEFAULT_MAX_DEPTH, ge=1, le=DEFAULT_MAX_DEPTH)


class IoConfig(BaseModel):
    """[io] section."""

    model_config = {"frozen": True}

    coerce_csv: bool = True
