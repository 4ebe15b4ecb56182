"""
store.py

Purpose:
  JSON persistence for the two datasets the updater maintains:
    - the entity store: a JSON array of city records,
    - the inflation store: an object whose per-country entries sit either
      under a top-level "countries" key or at the top level itself.

  Both are rewritten wholesale, pretty-printed with a trailing newline. Writes
  go through a temporary file and `os.replace`, so an interrupted write leaves
  the previous file in place.

Imported by: inflation.py, update_data.py, main.py

Imports:
  Standard library: json, logging, os, pathlib, typing
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Union

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class UpdaterError(Exception):
    """Base class for errors that abort an updater run."""


class StoreError(UpdaterError):
    """Raised when a store file is missing, unreadable or has the wrong shape."""


def _read_json(path: PathLike) -> Any:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError as exc:
        raise StoreError(f"Store not found: {path}") from exc
    except (OSError, ValueError) as exc:
        raise StoreError(f"Could not read {path}: {exc}") from exc


def write_json(path: PathLike, payload: Any) -> None:
    """Atomic write of `payload` as indented JSON plus a trailing newline."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(path.name + ".tmp")
    with open(tmp_path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, ensure_ascii=False)
        f.write("\n")
    os.replace(tmp_path, path)
    logger.debug("Wrote %s", path)


def load_cities(path: PathLike) -> List[Dict[str, Any]]:
    """Load the entity store; every element must be an object with an `id`."""
    data = _read_json(path)
    if not isinstance(data, list):
        raise StoreError(f"{path} must contain a JSON array of cities")
    for i, city in enumerate(data):
        if not isinstance(city, dict) or "id" not in city:
            raise StoreError(f"{path}: entry {i} is not a city record")
    return data


def save_cities(path: PathLike, cities: List[Dict[str, Any]]) -> None:
    write_json(path, cities)


def load_inflation(path: PathLike) -> Dict[str, Any]:
    data = _read_json(path)
    if not isinstance(data, dict):
        raise StoreError(f"{path} must contain a JSON object")
    return data


def inflation_countries(document: Dict[str, Any]) -> Dict[str, Any]:
    """Per-country map of an inflation document, wrapped or bare."""
    countries = document.get("countries")
    if isinstance(countries, dict):
        return countries
    return document


def save_inflation(path: PathLike, document: Dict[str, Any]) -> None:
    write_json(path, document)
