"""Static configuration for the title-keyed tag registries."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class TagType:
    """Describe one tag registry and how it is exposed over HTTP."""

    content_folder: str
    human_name: str
    game_field: str
    cover_prefix: str
    response_key: str
    list_response_key: str

    @property
    def route_base(self) -> str:
        return f"/{self.content_folder}"

    @property
    def endpoint_prefix(self) -> str:
        return self.content_folder.replace("-", "_")


CATEGORIES = TagType(
    content_folder="categories",
    human_name="Category",
    game_field="genre",
    cover_prefix="category-covers",
    response_key="category",
    list_response_key="categories",
)
THEMES = TagType(
    content_folder="themes",
    human_name="Theme",
    game_field="themes",
    cover_prefix="theme-covers",
    response_key="theme",
    list_response_key="themes",
)
PLATFORMS = TagType(
    content_folder="platforms",
    human_name="Platform",
    game_field="platforms",
    cover_prefix="platform-covers",
    response_key="platform",
    list_response_key="platforms",
)
GAME_ENGINES = TagType(
    content_folder="game-engines",
    human_name="Game engine",
    game_field="gameEngines",
    cover_prefix="game-engine-covers",
    response_key="gameEngine",
    list_response_key="gameEngines",
)
GAME_MODES = TagType(
    content_folder="game-modes",
    human_name="Game mode",
    game_field="gameModes",
    cover_prefix="game-mode-covers",
    response_key="gameMode",
    list_response_key="gameModes",
)
PLAYER_PERSPECTIVES = TagType(
    content_folder="player-perspectives",
    human_name="Player perspective",
    game_field="playerPerspectives",
    cover_prefix="player-perspective-covers",
    response_key="playerPerspective",
    list_response_key="playerPerspectives",
)

TAG_TYPES: tuple[TagType, ...] = (
    CATEGORIES,
    THEMES,
    PLATFORMS,
    GAME_ENGINES,
    GAME_MODES,
    PLAYER_PERSPECTIVES,
)
TAG_TYPES_BY_FOLDER: dict[str, TagType] = {
    tag_type.content_folder: tag_type for tag_type in TAG_TYPES
}
TAG_GAME_FIELDS: tuple[str, ...] = tuple(tag_type.game_field for tag_type in TAG_TYPES)


__all__ = [
    "CATEGORIES",
    "GAME_ENGINES",
    "GAME_MODES",
    "PLATFORMS",
    "PLAYER_PERSPECTIVES",
    "TAG_GAME_FIELDS",
    "TAG_TYPES",
    "TAG_TYPES_BY_FOLDER",
    "THEMES",
    "TagType",
]
