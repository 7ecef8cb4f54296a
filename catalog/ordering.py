"""Release-date ordering for collection membership lists."""

from __future__ import annotations

from typing import Any, Callable, Iterable, Mapping

from helpers import _coerce_int, release_sort_key

GameLookup = Callable[[Any], Mapping[str, Any] | None]


def normalize_game_ids(values: Iterable[Any]) -> list[Any]:
    """Return ``values`` as ids, de-duplicated with the first occurrence kept."""

    seen: set[Any] = set()
    result: list[Any] = []
    for value in values:
        numeric = _coerce_int(value)
        game_id: Any = numeric if numeric is not None else value
        if game_id is None or isinstance(game_id, (list, dict)):
            continue
        if game_id in seen:
            continue
        seen.add(game_id)
        result.append(game_id)
    return result


def _position_for(added_key: tuple[int, ...], members: list[Any], lookup: GameLookup) -> int:
    for index, member in enumerate(members):
        if added_key < release_sort_key(lookup(member)):
            return index
    return len(members)


def order_by_release(
    previous: Iterable[Any], requested: Iterable[Any], lookup: GameLookup
) -> list[Any]:
    """Return the membership list to persist for a reorder request.

    A request that adds exactly one id to the previous list inserts that id
    at its release-date position among the others. Any other request is
    stably sorted by release date, undated games last.
    """

    before = normalize_game_ids(previous)
    after = normalize_game_ids(requested)

    before_set = set(before)
    added = [game_id for game_id in after if game_id not in before_set]
    if len(after) == len(before) + 1 and len(added) == 1:
        new_id = added[0]
        members = [game_id for game_id in after if game_id != new_id]
        position = _position_for(release_sort_key(lookup(new_id)), members, lookup)
        members.insert(position, new_id)
        return members

    return sorted(after, key=lambda game_id: release_sort_key(lookup(game_id)))


__all__ = ["normalize_game_ids", "order_by_release"]
