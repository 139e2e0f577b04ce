from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping
import logging

logger = logging.getLogger(__name__)

ROOT_KEY = "root"

@dataclass(frozen=True)
class TagRecord:
  id: str
  tagger_id: str
  target_id: str
  parent_tag_id: str | None
  root_user_id: str
  generation: int
  timestamp: str = ""   # display/ordering only

  @classmethod
  def from_row(cls, row: Mapping[str, Any]) -> "TagRecord":
    parent = row.get("parent_tag_id")
    return cls(
      id=str(row["id"]),
      tagger_id=str(row.get("tagger_id", "")),
      target_id=str(row.get("target_id", "")),
      parent_tag_id=None if parent is None else str(parent),
      root_user_id=str(row.get("root_user_id") or ""),
      generation=int(row.get("generation") or 0),
      timestamp=str(row.get("timestamp") or row.get("created_at") or ""),
    )

@dataclass(frozen=True)
class LineagePath:
  tags: list[TagRecord] = field(default_factory=list)
  depth: int = 0
  root_user_id: str = ""

def _index(tags: Iterable[TagRecord]) -> dict[str, TagRecord]:
  index: dict[str, TagRecord] = {}
  for tag in tags:
    index.setdefault(str(tag.id), tag)  # first occurrence wins
  return index

def calculate_generation_depth(parent_generation: int) -> int:
  return parent_generation + 1

def traverse_to_root(tags: Iterable[TagRecord], start_tag_id) -> LineagePath:
  """Walk parent links from ``start_tag_id`` back to its root.

  Returns the chain root-first. A missing start tag yields an empty path;
  a parent absent from ``tags`` ends the walk early.
  """
  index = _index(tags)
  current = index.get(str(start_tag_id))
  if current is None:
    return LineagePath()

  path: list[TagRecord] = []
  seen: set[str] = set()
  while current is not None:
    path.append(current)
    seen.add(str(current.id))
    if not current.parent_tag_id:
      break
    parent_id = str(current.parent_tag_id)
    if parent_id in seen:
      logger.debug("cycle at tag %s while resolving %s", parent_id, start_tag_id)
      break
    current = index.get(parent_id)
    if current is None:
      logger.debug("parent %s missing while resolving %s", parent_id, start_tag_id)

  path.reverse()
  return LineagePath(
    tags=path,
    depth=len(path) - 1,
    root_user_id=path[-1].root_user_id,
  )

def get_ancestors(tags: Iterable[TagRecord], tag_id) -> list[TagRecord]:
  return traverse_to_root(tags, tag_id).tags[:-1]

def build_lineage_tree(tags: Iterable[TagRecord]) -> dict[str, list[TagRecord]]:
  tree: dict[str, list[TagRecord]] = {}
  for tag in tags:
    key = ROOT_KEY if not tag.parent_tag_id else str(tag.parent_tag_id)
    tree.setdefault(key, []).append(tag)
  return tree

def children_of(tags: Iterable[TagRecord], tag_id) -> list[TagRecord]:
  return build_lineage_tree(tags).get(str(tag_id), [])
