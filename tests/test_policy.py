"""
Tests for InfectionGuard.

Tests cover:
- Tag acceptance checks
- Credit distribution across a lineage
- Strain leaderboard ranking
- JSON score audit log
"""

import json
from datetime import datetime

import pytest

from infection_math.config import InfectionConfig, config_from_dict
from infection_math.lineage import TagRecord
from infection_math.policy import InfectionGuard, StrainStanding
from infection_math.scoring import ScoringMultipliers
from infection_math.variants import VariantRules


@pytest.fixture
def chain():
  return [
    TagRecord("t0", "alice", "bob", None, "alice", 0),
    TagRecord("t1", "bob", "carol", "t0", "alice", 1),
    TagRecord("t2", "carol", "dave", "t1", "alice", 2),
    TagRecord("t3", "dave", "erin", "t2", "alice", 3),
  ]


@pytest.fixture
def guard():
  return InfectionGuard()


class TestCheckTag:
  """check_tag composition."""

  def test_self_tag_rejected(self, guard):
    result = guard.check_tag(None, 0, datetime.now(), tagger_id="u1", target_id="u1")
    assert not result.valid
    assert result.error == "Cannot infect yourself"

  def test_no_variant_accepts(self, guard):
    assert guard.check_tag(None, 99, datetime.now(), tagger_id="u1", target_id="u2").valid

  def test_delegates_to_rules(self, guard):
    result = guard.check_tag(VariantRules(tag_limit=3), 3, datetime.now())
    assert not result.valid
    assert "3" in result.error

  def test_radius_boost_widens_check(self, guard):
    rules = {"radius": 100}
    near = (0.0, 0.0)
    far = (150 / 111194.93, 0.0)  # ~150 m north
    assert not guard.check_tag(rules, 0, datetime.now(), near, far).valid
    assert guard.check_tag(rules, 0, datetime.now(), near, far, radius_boosts=[30, 30]).valid


class TestScoreTag:
  """score_tag credit distribution."""

  def test_decaying_credit(self, guard, chain):
    result = guard.score_tag(chain, "t3")
    assert result.score == 1
    assert result.deltas == {"dave": 1.0, "carol": 0.5, "bob": 0.25, "alice": 0.125}
    assert result.lineage.depth == 3

  def test_multipliers_apply_to_ancestors(self, guard, chain):
    m = ScoringMultipliers(outbreak_multiplier=2.0, variant_chain_bonus=1.0)
    result = guard.score_tag(chain[:2], "t1", m)
    assert result.deltas["bob"] == pytest.approx(3.0)
    assert result.deltas["alice"] == pytest.approx(0.5 * 2.0 + 1.0)

  def test_repeat_user_accumulates(self, guard):
    tags = [
      TagRecord("a", "x", "y", None, "x", 0),
      TagRecord("b", "y", "x", "a", "x", 1),
      TagRecord("c", "x", "z", "b", "x", 2),
    ]
    result = guard.score_tag(tags, "c")
    assert result.deltas == {"x": 1.25, "y": 0.5}

  def test_method_multiplier_on_tagger_only(self, guard, chain):
    result = guard.score_tag(chain[:2], "t1", method="chain_reaction")
    assert result.score == pytest.approx(1.5)
    assert result.deltas["alice"] == pytest.approx(0.5)

  def test_unknown_tag(self, guard, chain):
    result = guard.score_tag(chain, "missing")
    assert result.score == 0.0
    assert result.deltas == {}
    assert result.lineage.tags == []

  def test_build_multipliers(self, guard):
    m = guard.build_multipliers(
      outbreak_multiplier=None,
      region_multiplier=1.5,
      mutation_boosts=[2.0, 1.5],
      variant_chain_depth=3,
    )
    assert m == ScoringMultipliers(1.0, 1.5, 3.0, 1.5)


class TestRankStrains:
  """rank_strains leaderboard."""

  def test_ordering_and_ranks(self, guard):
    standings = [
      StrainStanding("s1", user="a", direct_infections=5),
      StrainStanding("s2", user="b", direct_infections=1, outbreak_count=1),
      StrainStanding("s3", user="c", direct_infections=5),
    ]
    ranked = guard.rank_strains(standings)
    assert [r.strain_id for r in ranked] == ["s2", "s1", "s3"]
    assert [r.rank for r in ranked] == [1, 2, 3]
    assert ranked[0].score == 11
    assert set(ranked[0].to_dict()) == {
      "rank", "strain_id", "user", "outbreak_count",
      "total_multiplier", "total_tags", "score",
    }

  def test_configured_weights(self):
    guard = InfectionGuard(config=config_from_dict({"scoring": {"outbreak_weight": 1}}))
    assert guard.strain_score(StrainStanding("s", direct_infections=1, outbreak_count=3)) == 4


class TestAuditLog:
  """JSON score log."""

  def test_writes_record_when_enabled(self, tmp_path, chain):
    out = tmp_path / "scores.jsonl"
    cfg = config_from_dict({
      "logging": {"hex_namespace": "test", "enable_json_logs": True},
      "audit": {"save_scores": True, "output_path": str(out)},
    })
    result = InfectionGuard(config=cfg).score_tag(chain, "t2")
    record = json.loads(out.read_text().strip())
    assert record["tag_id"] == "t2"
    assert record["depth"] == 2
    assert record["hex"] == f"test[{result.hex_trace}]"

  def test_silent_by_default(self, tmp_path, chain, monkeypatch):
    monkeypatch.chdir(tmp_path)
    InfectionGuard(config=InfectionConfig()).score_tag(chain, "t2")
    assert list(tmp_path.iterdir()) == []
