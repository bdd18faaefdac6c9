# Copyright (c) Syntropy Systems
"""Shared Pydantic model config for bandsweep records."""

from __future__ import annotations

from typing import ClassVar

from pydantic import BaseModel, ConfigDict


class BandsweepBaseModel(BaseModel):
    """Mutable model; unknown keys in saved files are dropped on load."""

    model_config: ClassVar[ConfigDict] = ConfigDict(
        extra="ignore",
        populate_by_name=True,
    )


class FrozenRecord(BaseModel):
    """Immutable record; fields are also readable by their camelCase alias."""

    model_config: ClassVar[ConfigDict] = ConfigDict(
        extra="ignore",
        populate_by_name=True,
        frozen=True,
    )
