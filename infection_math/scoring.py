from __future__ import annotations
from dataclasses import dataclass, fields
from typing import Any, Iterable, Literal, Mapping, Union

InfectionMethod = Literal[
  "direct", "qr", "deep_link", "chat_link", "share_card", "story_qr",
  "tag_drop", "group_infection", "proximity", "hotspot", "event",
  "chain_reaction", "ambient", "outbreak_zone", "mutant_tag", "npc",
]

METHOD_MULTIPLIERS: dict[str, float] = {
  "direct": 1.0,
  "qr": 1.0,
  "deep_link": 1.0,
  "chat_link": 1.0,
  "share_card": 1.0,
  "story_qr": 1.0,
  "tag_drop": 1.0,
  "group_infection": 1.0,
  "proximity": 1.2,
  "hotspot": 1.15,
  "event": 1.0,
  "chain_reaction": 1.5,
  "ambient": 0.5,       # passive spread
  "outbreak_zone": 1.0,
  "mutant_tag": 1.0,
  "npc": 1.0,
}

# (threshold, points) pairs
INFECTION_MILESTONES = ((100, 5), (500, 10), (1000, 20))
DEPTH_MILESTONES = ((10, 5), (20, 10), (50, 25))
OUTBREAK_MP_THRESHOLD = 2.0
OUTBREAK_MP_AWARD = 2

OUTBREAK_TRIGGER_MULTIPLIER = 5.0
OUTBREAK_TRIGGER_MIN_TAGS = 5
VARIANT_CHAIN_LOOKBACK = 10

@dataclass(frozen=True)
class ScoringMultipliers:
  outbreak_multiplier: float = 1.0
  region_multiplier: float = 1.0
  mutation_boost: float = 1.0
  variant_chain_bonus: float = 0.0

  @classmethod
  def from_mapping(cls, raw: Mapping[str, Any] | None) -> "ScoringMultipliers":
    """Build from a loose mapping; absent or None fields stay neutral."""
    if not raw:
      return cls()
    known = {f.name for f in fields(cls)}
    unknown = set(raw) - known
    if unknown:
      raise TypeError(f"Unknown multiplier fields: {sorted(unknown)}")
    return cls(**{k: float(v) for k, v in raw.items() if v is not None})

MultipliersLike = Union[ScoringMultipliers, Mapping[str, Any], None]

def as_multipliers(value: MultipliersLike) -> ScoringMultipliers:
  if isinstance(value, ScoringMultipliers):
    return value
  return ScoringMultipliers.from_mapping(value)

def calculate_direct_score() -> int:
  return 1

def calculate_indirect_score(generation_depth: int) -> float:
  return 0.5 ** generation_depth

def calculate_recursive_score(current_generation: int, ancestor_generation: int) -> float:
  # a tag never scores against itself or a later generation
  depth = current_generation - ancestor_generation
  if depth <= 0:
    return 0.0
  return 0.5 ** depth

def calculate_total_score(direct: float, indirect: float) -> float:
  return direct + indirect

def calculate_outbreak_bonus(base_score: float, outbreak_multiplier: float = 1.0) -> float:
  if outbreak_multiplier <= 1.0:
    return 0.0
  return base_score * (outbreak_multiplier - 1.0)

def calculate_variant_chain_depth(same_variant_tags: int, lookback: int = VARIANT_CHAIN_LOOKBACK) -> int:
  # earlier same-variant tags in the strain, capped, plus the new tag
  return min(max(same_variant_tags, 0), lookback) + 1

def calculate_variant_chain_bonus(chain_depth: int, step: float = 0.5) -> float:
  return chain_depth * step

def apply_region_multiplier(base_score: float, region_multiplier: float = 1.0) -> float:
  return base_score * region_multiplier

def apply_mutation_boost(base_score: float, mutation_boost: float = 1.0) -> float:
  return base_score * mutation_boost

def calculate_enhanced_score(base_score: float, multipliers: MultipliersLike = None) -> float:
  m = as_multipliers(multipliers)
  multiplied = base_score * m.outbreak_multiplier * m.region_multiplier * m.mutation_boost
  return multiplied + m.variant_chain_bonus

def calculate_strain_enhanced_score(
    direct_infections: float,
    indirect_infections: float,
    outbreak_count: int = 0,
    variant_chain_depth: int = 0,
    mutation_points: float = 0,
    *,
    outbreak_weight: float = 10.0,
    chain_weight: float = 5.0,
    mutation_point_weight: float = 0.1,
) -> float:
  """Flat leaderboard aggregate for a whole strain.

  Outbreaks and chain depth add fixed per-unit weights rather than
  compounding like the per-tag enhanced score.
  """
  base = direct_infections + indirect_infections
  return (
    base
    + outbreak_count * outbreak_weight
    + variant_chain_depth * chain_weight
    + mutation_points * mutation_point_weight
  )

def method_multiplier(method: str) -> float:
  return METHOD_MULTIPLIERS.get(method, 1.0)

def calculate_tag_score(
    tag_count: int,
    multipliers: MultipliersLike = None,
    method: InfectionMethod = "direct",
    direct_points: float = 1.0,
) -> float:
  m = as_multipliers(multipliers)
  base = direct_points * tag_count * method_multiplier(method)
  return calculate_enhanced_score(base, m)

def combine_mutation_boosts(boosts: Iterable[float | None]) -> float:
  total = 1.0
  for b in boosts:
    if b:
      total *= b
  return total

def calculate_mutation_points(
    previous_total: float,
    new_total: float,
    previous_depth: int,
    new_generation: int,
    outbreak_multiplier: float = 1.0,
) -> int:
  """Mutation points earned by milestones crossed with this tag."""
  points = 0
  for threshold, award in INFECTION_MILESTONES:
    if new_total >= threshold and previous_total < threshold:
      points += award
  for threshold, award in DEPTH_MILESTONES:
    if new_generation >= threshold and previous_depth < threshold:
      points += award
  if outbreak_multiplier > OUTBREAK_MP_THRESHOLD:
    points += OUTBREAK_MP_AWARD
  return points

def is_outbreak_triggered(outbreak_multiplier: float, recent_tag_count: int) -> bool:
  return (
    outbreak_multiplier > OUTBREAK_TRIGGER_MULTIPLIER
    and recent_tag_count >= OUTBREAK_TRIGGER_MIN_TAGS
  )
