"""Settings management for source resolution.

Scope-aware YAML settings. Scope priority (most specific wins):
1. local (.srcres/settings.local.yaml) - gitignored, machine-specific
2. project (.srcres/settings.yaml) - committed, team-shared
3. global (~/.srcres/settings.yaml) - user defaults

All resolver options live under the `resolver` key:

    resolver:
      repositories:
        - ./src
        - ~/.srcres/cache/stdlib.jar
      max_depth: 64
      follow_symlinks: true
      parallel: false
      strict: true
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from typing import Literal

import yaml
from pydantic import BaseModel
from pydantic import Field
from pydantic import ValidationError

from .repositories.base import DEFAULT_MAX_DEPTH

logger = logging.getLogger(__name__)

Scope = Literal["local", "project", "global"]

SCOPES: tuple[Scope, ...] = ("local", "project", "global")


class ResolverSettings(BaseModel):
    """Validated resolver options."""

    repositories: list[str] = Field(default_factory=list, description="Repository sources, highest precedence first")
    max_depth: int = Field(default=DEFAULT_MAX_DEPTH, ge=1, description="Maximum rest wildcard descent")
    follow_symlinks: bool = Field(default=True, description="Descend into symlinked directories")
    scratch_dir: str | None = Field(None, description="Parent directory for extracted archive entries")
    parallel: bool = Field(default=False, description="Resolve repositories on worker threads")
    max_workers: int | None = Field(None, ge=1, description="Worker threads for parallel resolution")
    strict: bool = Field(default=True, description="Fail when a repository cannot be read")


@dataclass
class SettingsPaths:
    """Standard paths for settings files."""

    global_settings: Path
    project_settings: Path
    local_settings: Path

    @classmethod
    def default(cls) -> SettingsPaths:
        """Create default paths for the standard .srcres layout."""
        return cls(
            global_settings=Path.home() / ".srcres" / "settings.yaml",
            project_settings=Path.cwd() / ".srcres" / "settings.yaml",
            local_settings=Path.cwd() / ".srcres" / "settings.local.yaml",
        )


class AppSettings:
    """Settings manager with scope-aware merging.

    Usage:
        settings = AppSettings()
        resolver = settings.get_resolver_settings()
        settings.add_repository("./vendor/lib.jar", scope="project")
    """

    def __init__(self, paths: SettingsPaths | None = None) -> None:
        self.paths = paths or SettingsPaths.default()

    def get_merged_settings(self) -> dict[str, Any]:
        """Load and merge settings from all scopes (global, then project, then local)."""
        result: dict[str, Any] = {}
        for scope in reversed(SCOPES):
            result = self._deep_merge(result, self._read_scope(scope))
        return result

    def get_resolver_settings(self) -> ResolverSettings:
        """Merged resolver options.

        Repository lists are not overridden between scopes: they are
        concatenated most specific first, so a project repository shadows a
        user-wide one.

        Raises:
            ValueError: Merged settings fail validation
        """
        merged = dict(self.get_merged_settings().get("resolver") or {})
        merged["repositories"] = self.get_repositories()
        try:
            return ResolverSettings(**merged)
        except ValidationError as e:
            raise ValueError(f"Invalid resolver settings: {e}") from e

    # ----- Repository settings -----

    def get_repositories(self, scope: Scope | None = None) -> list[str]:
        """Configured repository sources, highest precedence first."""
        scopes = SCOPES if scope is None else (scope,)
        sources: list[str] = []
        for name in scopes:
            resolver = self._read_scope(name).get("resolver") or {}
            for source in resolver.get("repositories") or []:
                if str(source) not in sources:
                    sources.append(str(source))
        return sources

    def add_repository(self, source: str, scope: Scope = "project", *, first: bool = False) -> bool:
        """Add a repository source at the given scope.

        Args:
            source: Repository path or URI
            scope: Settings scope to write
            first: Insert with highest precedence instead of appending

        Returns:
            False if the source was already configured at that scope
        """
        settings = self._read_scope(scope)
        resolver = settings.setdefault("resolver", {}) or {}
        repositories = list(resolver.get("repositories") or [])
        if source in repositories:
            return False
        if first:
            repositories.insert(0, source)
        else:
            repositories.append(source)
        resolver["repositories"] = repositories
        settings["resolver"] = resolver
        self._write_scope(scope, settings)
        return True

    def remove_repository(self, source: str, scope: Scope = "project") -> bool:
        """Remove a repository source from the given scope.

        Returns:
            True if it was removed, False if it was not configured there
        """
        settings = self._read_scope(scope)
        resolver = settings.get("resolver") or {}
        repositories = list(resolver.get("repositories") or [])
        if source not in repositories:
            return False
        repositories.remove(source)
        resolver["repositories"] = repositories
        settings["resolver"] = resolver
        self._write_scope(scope, settings)
        return True

    # ----- Scope utilities -----

    def _get_scope_path(self, scope: Scope) -> Path:
        """Get settings file path for scope."""
        return {
            "local": self.paths.local_settings,
            "project": self.paths.project_settings,
            "global": self.paths.global_settings,
        }[scope]

    def _read_scope(self, scope: Scope) -> dict[str, Any]:
        """Read settings from a specific scope; malformed files read as empty."""
        path = self._get_scope_path(scope)
        if not path.exists():
            return {}
        try:
            with open(path) as f:
                content = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Skipping unreadable settings file {path}: {e}")
            return {}
        if not isinstance(content, dict):
            logger.warning(f"Skipping settings file {path}: expected a mapping")
            return {}
        return _checked_resolver_block(content, path)

    def _write_scope(self, scope: Scope, settings: dict[str, Any]) -> None:
        """Write settings to a specific scope."""
        path = self._get_scope_path(scope)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            yaml.safe_dump(settings, f, default_flow_style=False)

    def _deep_merge(self, base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
        """Deep merge two dicts, overlay wins."""
        result = base.copy()
        for key, value in overlay.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value
        return result


def _checked_resolver_block(content: dict[str, Any], path: Path) -> dict[str, Any]:
    """Drop a `resolver` block or `repositories` list with the wrong shape."""
    resolver = content.get("resolver")
    if resolver is None:
        return content
    if not isinstance(resolver, dict):
        logger.warning(f"Ignoring 'resolver' in {path}: expected a mapping")
        return {key: value for key, value in content.items() if key != "resolver"}

    repositories = resolver.get("repositories")
    if repositories is None:
        return content
    if not isinstance(repositories, list):
        logger.warning(f"Ignoring 'resolver.repositories' in {path}: expected a list")
        kept: list[str] = []
    else:
        kept = [source for source in repositories if isinstance(source, str)]
        if len(kept) != len(repositories):
            logger.warning(f"Ignoring non-string entries in 'resolver.repositories' in {path}")
    return {**content, "resolver": {**resolver, "repositories": kept}}
