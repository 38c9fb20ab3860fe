"""Translate friendly keyword parameters into the API's query names."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

MATCHES: dict[str, str] = {
    "game_mode": "filter[gameMode]",
    "player_ids": "filter[playerIds]",
    "created_at_start": "filter[createdAt-start]",
    "created_at_end": "filter[createdAt-end]",
    "sort": "sort",
    "offset": "page[offset]",
    "limit": "page[limit]",
}

PLAYERS: dict[str, str] = {
    "player_ids": "filter[playerIds]",
    "player_names": "filter[playerNames]",
}

_CAMEL_ALIASES = {
    "gameMode": "game_mode",
    "playerIds": "player_ids",
    "playerNames": "player_names",
    "createdAtStart": "created_at_start",
    "createdAtEnd": "created_at_end",
}


def map_params(
    params: Mapping[str, Any] | None, mapping: Mapping[str, str]
) -> dict[str, str] | None:
    """Return *params* renamed through *mapping*.

    ``None`` values are dropped and sequences are joined with commas.
    Returns ``None`` when nothing is left, so no query string is sent.
    Raises :class:`ValueError` for keys the route does not understand.
    """
    if not params:
        return None
    mapped: dict[str, str] = {}
    for key, value in params.items():
        if value is None:
            continue
        name = _CAMEL_ALIASES.get(key, key)
        if name not in mapping:
            raise ValueError(f"Unknown parameter {key!r}; expected one of {sorted(mapping)}")
        if isinstance(value, (list, tuple)):
            value = ",".join(str(v) for v in value)
        mapped[mapping[name]] = str(value)
    return mapped or None
