from dataclasses import dataclass, field
from typing import Any
import yaml

@dataclass
class ScoringConfig:
  direct_points: float = 1.0
  variant_chain_step: float = 0.5
  outbreak_weight: float = 10.0
  chain_weight: float = 5.0
  mutation_point_weight: float = 0.1

@dataclass
class LoggingConfig:
  hex_namespace: str = "infx"
  enable_json_logs: bool = False

@dataclass
class AuditConfig:
  save_scores: bool = False
  output_path: str = "scores.jsonl"

@dataclass
class InfectionConfig:
  scoring: ScoringConfig = field(default_factory=ScoringConfig)
  logging: LoggingConfig = field(default_factory=LoggingConfig)
  audit: AuditConfig = field(default_factory=AuditConfig)

def default_config() -> InfectionConfig:
  return InfectionConfig()

def config_from_dict(raw: dict[str, Any] | None) -> InfectionConfig:
  raw = raw or {}
  s = raw.get("scoring") or {}
  l = raw.get("logging") or {}
  a = raw.get("audit") or {}
  return InfectionConfig(
    scoring=ScoringConfig(**s),
    logging=LoggingConfig(**l),
    audit=AuditConfig(**a),
  )

def load_config(path: str) -> InfectionConfig:
  with open(path, "r") as f:
    raw = yaml.safe_load(f)
  return config_from_dict(raw)
