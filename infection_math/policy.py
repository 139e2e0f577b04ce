from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, time, timezone
from typing import Any, Iterable
import json
import logging
import uuid

from .config import InfectionConfig, default_config, load_config
from .geo import LocationLike
from .lineage import LineagePath, TagRecord, traverse_to_root
from .scoring import (
  MultipliersLike,
  ScoringMultipliers,
  as_multipliers,
  calculate_enhanced_score,
  calculate_recursive_score,
  calculate_strain_enhanced_score,
  calculate_tag_score,
  calculate_variant_chain_bonus,
  combine_mutation_boosts,
)
from .variants import (
  RulesLike,
  ValidationResult,
  VariantRules,
  boost_radius,
  validate_variant_rules,
)

logger = logging.getLogger(__name__)

@dataclass
class TagScoreResult:
  tag_id: str
  score: float                      # tagger's points for this tag
  deltas: dict[str, float]          # user id -> points, tagger first
  lineage: LineagePath
  hex_trace: str

@dataclass
class StrainStanding:
  strain_id: str
  user: Any = None
  direct_infections: float = 0.0
  indirect_infections: float = 0.0
  outbreak_count: int = 0
  variant_chain_depth: int = 0
  mutation_points: float = 0.0
  total_multiplier: float = 1.0
  total_tags: int = 0

@dataclass
class StrainRank:
  rank: int
  strain_id: str
  user: Any
  outbreak_count: int
  total_multiplier: float
  total_tags: int
  score: float

  def to_dict(self) -> dict[str, Any]:
    return {
      "rank": self.rank,
      "strain_id": self.strain_id,
      "user": self.user,
      "outbreak_count": self.outbreak_count,
      "total_multiplier": self.total_multiplier,
      "total_tags": self.total_tags,
      "score": self.score,
    }

class InfectionGuard:
  """Composes lineage, scoring and variant checks for one tag at a time.

  Holds configuration only; every call is independent.
  """

  def __init__(self, config_path: str | None = None, config: InfectionConfig | None = None):
    if config is not None:
      self.cfg = config
    elif config_path is not None:
      self.cfg = load_config(config_path)
    else:
      self.cfg = default_config()

  def check_tag(
      self,
      variant_rules: RulesLike | None,
      tags_given: int,
      current_time: datetime | time,
      tagger_location: LocationLike | None = None,
      target_location: LocationLike | None = None,
      tagger_id: str | None = None,
      target_id: str | None = None,
      radius_boosts: Iterable[float | None] = (),
  ) -> ValidationResult:
    if tagger_id is not None and tagger_id == target_id:
      result = ValidationResult(valid=False, error="Cannot infect yourself")
    elif variant_rules is None:
      result = ValidationResult(valid=True)
    else:
      if not isinstance(variant_rules, VariantRules):
        variant_rules = VariantRules.from_mapping(variant_rules)
      result = validate_variant_rules(
        boost_radius(variant_rules, radius_boosts), tags_given, current_time,
        tagger_location, target_location,
      )
    if not result.valid:
      logger.info("tag rejected for %s: %s", tagger_id or "<unknown>", result.error)
    return result

  def build_multipliers(
      self,
      outbreak_multiplier: float | None = None,
      region_multiplier: float | None = None,
      mutation_boosts: Iterable[float | None] = (),
      variant_chain_depth: int = 0,
  ) -> ScoringMultipliers:
    """Neutral defaults for anything absent; chain depth comes from ``calculate_variant_chain_depth``."""
    return ScoringMultipliers(
      outbreak_multiplier=outbreak_multiplier or 1.0,
      region_multiplier=region_multiplier or 1.0,
      mutation_boost=combine_mutation_boosts(mutation_boosts),
      variant_chain_bonus=calculate_variant_chain_bonus(
        variant_chain_depth, step=self.cfg.scoring.variant_chain_step,
      ),
    )

  def score_tag(
      self,
      tags: Iterable[TagRecord],
      tag_id: str,
      multipliers: MultipliersLike = None,
      method: str = "direct",
      tag_count: int = 1,
  ) -> TagScoreResult:
    m = as_multipliers(multipliers)
    lineage = traverse_to_root(tags, tag_id)
    deltas: dict[str, float] = {}
    score = 0.0

    if lineage.tags:
      tag = lineage.tags[-1]
      score = calculate_tag_score(
        tag_count, m, method, direct_points=self.cfg.scoring.direct_points,
      )
      deltas[tag.tagger_id] = score
      # nearest ancestor first
      for ancestor in reversed(lineage.tags[:-1]):
        base = calculate_recursive_score(tag.generation, ancestor.generation)
        if base <= 0:
          continue
        credit = calculate_enhanced_score(base, m)
        deltas[ancestor.tagger_id] = deltas.get(ancestor.tagger_id, 0.0) + credit

    result = TagScoreResult(
      tag_id=str(tag_id),
      score=score,
      deltas=deltas,
      lineage=lineage,
      hex_trace=uuid.uuid4().hex,
    )
    if self.cfg.logging.enable_json_logs and self.cfg.audit.save_scores:
      self._log(result)
    return result

  def strain_score(self, standing: StrainStanding) -> float:
    s = self.cfg.scoring
    return calculate_strain_enhanced_score(
      standing.direct_infections,
      standing.indirect_infections,
      standing.outbreak_count,
      standing.variant_chain_depth,
      standing.mutation_points,
      outbreak_weight=s.outbreak_weight,
      chain_weight=s.chain_weight,
      mutation_point_weight=s.mutation_point_weight,
    )

  def rank_strains(self, standings: Iterable[StrainStanding]) -> list[StrainRank]:
    scored = [(self.strain_score(s), s) for s in standings]
    # stable: ties keep input order
    scored = sorted(scored, key=lambda pair: pair[0], reverse=True)
    return [
      StrainRank(
        rank=i + 1,
        strain_id=s.strain_id,
        user=s.user,
        outbreak_count=s.outbreak_count,
        total_multiplier=s.total_multiplier,
        total_tags=s.total_tags,
        score=score,
      )
      for i, (score, s) in enumerate(scored)
    ]

  def _log(self, result: TagScoreResult) -> None:
    record = {
      "timestamp": datetime.now(timezone.utc).isoformat(),
      "tag_id": result.tag_id,
      "score": result.score,
      "deltas": result.deltas,
      "depth": result.lineage.depth,
      "hex": f"{self.cfg.logging.hex_namespace}[{result.hex_trace}]",
    }
    with open(self.cfg.audit.output_path, "a") as f:
      f.write(json.dumps(record) + "\n")
