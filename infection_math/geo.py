from dataclasses import dataclass
from typing import Mapping, Sequence, Union
import numpy as np

EARTH_RADIUS_M = 6371e3  # mean radius

@dataclass(frozen=True)
class Location:
  lat: float
  lng: float

LocationLike = Union[Location, Sequence[float], Mapping[str, float]]

def as_location(value: LocationLike | None) -> Location | None:
  if value is None or isinstance(value, Location):
    return value
  if isinstance(value, Mapping):
    return Location(lat=float(value["lat"]), lng=float(value["lng"]))
  lat, lng = value
  return Location(lat=float(lat), lng=float(lng))

def haversine_distance_meters(
    lat1: float,
    lng1: float,
    lat2: float,
    lng2: float,
) -> float:
  """Great-circle distance in meters between two points given in degrees."""
  phi1 = np.radians(lat1)
  phi2 = np.radians(lat2)
  d_phi = np.radians(lat2 - lat1)
  d_lambda = np.radians(lng2 - lng1)

  a = (
    np.sin(d_phi / 2) ** 2
    + np.cos(phi1) * np.cos(phi2) * np.sin(d_lambda / 2) ** 2
  )
  # rounding can push a past 1.0 for near-antipodal points
  c = 2 * np.arctan2(np.sqrt(a), np.sqrt(np.maximum(1 - a, 0.0)))
  return float(EARTH_RADIUS_M * c)

def distance_between(a: LocationLike, b: LocationLike) -> float:
  p = as_location(a); q = as_location(b)
  return haversine_distance_meters(p.lat, p.lng, q.lat, q.lng)
