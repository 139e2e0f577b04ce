from __future__ import annotations
from dataclasses import dataclass, field, replace
from datetime import datetime, time
from typing import Any, Iterable, Mapping, Union
import math
from .geo import LocationLike, as_location, haversine_distance_meters

UNLOCK_THRESHOLDS: dict[int, int] = {1: 0, 2: 10, 3: 50, 4: 100, 5: 500}

_UNLOCK_TEXT: dict[int, str] = {
  1: "Available by default",
  2: "Reach 10 infections",
  3: "Reach 50 infections",
  4: "Reach 100 infections",
  5: "Reach 500 infections",
}

@dataclass(frozen=True)
class TimeWindow:
  start: str   # "HH:MM"
  end: str

@dataclass(frozen=True)
class VariantRules:
  tag_limit: int | None = None
  time_restriction: TimeWindow | None = None
  radius: float = 0
  visibility: bool = True   # informational, never enforced

  @classmethod
  def from_mapping(cls, raw: Mapping[str, Any] | None) -> "VariantRules":
    raw = raw or {}
    window = raw.get("time_restriction")
    if isinstance(window, Mapping):
      window = TimeWindow(start=str(window["start"]), end=str(window["end"]))
    return cls(
      tag_limit=raw.get("tag_limit"),
      time_restriction=window or None,
      radius=raw.get("radius") or 0,
      visibility=bool(raw.get("visibility", True)),
    )

@dataclass(frozen=True)
class Variant:
  id: str
  name: str
  rules: VariantRules = field(default_factory=VariantRules)
  icon_url: str | None = None
  rarity: int = 1

  @classmethod
  def from_row(cls, row: Mapping[str, Any]) -> "Variant":
    return cls(
      id=str(row["id"]),
      name=str(row.get("name", "")),
      rules=VariantRules.from_mapping(row.get("rules")),
      icon_url=row.get("icon_url"),
      rarity=int(row.get("rarity", 1)),
    )

@dataclass(frozen=True)
class ValidationResult:
  valid: bool
  error: str | None = None

OK = ValidationResult(valid=True)

RulesLike = Union[VariantRules, Mapping[str, Any]]

def format_clock(current_time: datetime | time) -> str:
  # "H:MM", hour unpadded
  return f"{current_time.hour}:{current_time.minute:02d}"

def _round_half_up(value: float) -> int:
  return math.floor(value + 0.5)

def _meters(value: float) -> str:
  # 100.0 -> "100"
  if float(value).is_integer():
    return str(int(value))
  return str(value)

def boost_radius(rules: VariantRules, radius_boosts: Iterable[float | None]) -> VariantRules:
  """Widen a proximity radius by mutation ``radius_boost`` values.

  A disabled radius (0) stays disabled.
  """
  if not rules.radius:
    return rules
  extra = sum(b for b in radius_boosts if b)
  if not extra:
    return rules
  return replace(rules, radius=rules.radius + extra)

def validate_variant_rules(
    rules: RulesLike,
    tags_given: int,
    current_time: datetime | time,
    tagger_location: LocationLike | None,
    target_location: LocationLike | None,
) -> ValidationResult:
  if not isinstance(rules, VariantRules):
    rules = VariantRules.from_mapping(rules)

  if rules.tag_limit is not None and tags_given >= rules.tag_limit:
    return ValidationResult(
      valid=False,
      error=f"Tag limit reached. Maximum {rules.tag_limit} tags allowed for this variant.",
    )

  window = rules.time_restriction
  if window:
    clock = format_clock(current_time)
    if clock < window.start or clock > window.end:
      return ValidationResult(
        valid=False,
        error=f"Tagging not allowed at this time. Allowed: {window.start} - {window.end}",
      )

  tagger = as_location(tagger_location)
  target = as_location(target_location)
  if rules.radius and tagger and target:
    distance = haversine_distance_meters(tagger.lat, tagger.lng, target.lat, target.lng)
    if distance > rules.radius:
      return ValidationResult(
        valid=False,
        error=(
          f"Target is too far away. Maximum radius: {_meters(rules.radius)}m. "
          f"Distance: {_round_half_up(distance)}m"
        ),
      )

  return OK

def is_variant_unlocked(user_variants: Iterable[str], variant_id: str) -> bool:
  return variant_id in user_variants

def get_variant_unlock_conditions(variant: Variant) -> str:
  return _UNLOCK_TEXT.get(variant.rarity, "Unknown conditions")

def should_unlock_variant(variant: Variant, total_infections: float) -> bool:
  threshold = UNLOCK_THRESHOLDS.get(variant.rarity)
  if threshold is None:
    return False
  return total_infections >= threshold

def find_unlockable_variants(
    variants: Iterable[Variant],
    user_variants: Iterable[str],
    total_infections: float,
) -> list[str]:
  owned = set(user_variants)
  return [
    v.id for v in variants
    if v.id not in owned and should_unlock_variant(v, total_infections)
  ]
