"""Validation rules for allocation lists.

All checks are pure and run before anything is mutated.
"""
from __future__ import annotations

from typing import Sequence

from common.errors import StateError, ValidationError
from policy.types import SCALE


def validate_lengths(handles: Sequence[str], weights: Sequence[int]) -> None:
    if len(handles) != len(weights):
        raise ValidationError(
            "LengthMismatch", f"{len(handles)} handles but {len(weights)} weights"
        )


def validate_weight_sum(weights: Sequence[int]) -> None:
    if any(int(w) != w or w < 0 for w in weights):
        raise ValidationError("WeightSumMismatch", f"weights must be non-negative integers: {list(weights)}")
    total = sum(weights)
    if total != SCALE:
        raise ValidationError("WeightSumMismatch", f"weights sum to {total}, expected {SCALE}")


def validate_unique(handles: Sequence[str]) -> None:
    if any(not h for h in handles):
        raise ValidationError("ZeroAddress", "empty strategy handle")
    if len(set(handles)) != len(handles):
        raise ValidationError("DuplicateHandle", f"duplicate handles in {list(handles)}")


def validate_enabled(registry, handles: Sequence[str]) -> None:
    for h in handles:
        if not registry.lookup_handler(h).enabled:
            raise StateError("TokenNotEnabled", f"{h} is not enabled in the asset registry")


def validate_not_paused(registry) -> None:
    if registry.is_paused():
        raise StateError("ProtocolPaused", "protocol is paused")
