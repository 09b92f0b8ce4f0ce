"""funcsplice configuration loader.

Priority (high → low):
  1. CLI flags           (applied by the caller via RunFlags / with_flags())
  2. Environment variables  (SAFE_MODE, QUIET_MODE, FUNCSPLICE_WORKSPACE,
                             FUNCSPLICE_CHECKSUM)
  3. Per-project funcsplice.yaml  (in the invocation directory)
  4. Global ~/.funcsplice/config.yaml
  5. Hardcoded defaults

The loaded FuncConfig is passed explicitly into every core operation; there is
no module-level mutable state.
All YAML reads use yaml.safe_load(), never yaml.load().
"""

from __future__ import annotations

import hashlib
import os
import warnings
from dataclasses import dataclass, field, replace
from pathlib import Path, PurePath
from typing import Any

import yaml

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".funcsplice"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
_PROJECT_CONFIG_NAME: str = "funcsplice.yaml"

# Known top-level sections; unknown keys produce a warning
_KNOWN_SECTIONS: frozenset[str] = frozenset(["workspace", "safety", "checksum", "output"])

_TRUE_STRINGS = frozenset(["1", "true", "yes", "on"])
_FALSE_STRINGS = frozenset(["0", "false", "no", "off"])


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(ValueError):
    """Raised when a config file contains an invalid value."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class WorkspaceCfg:
    """Staging layout (funcsplice.yaml: workspace:).

    Attributes:
        dir: Staging directory for .orig.sh/.edit.sh/.extracted.sh files,
            relative to the invocation directory.
        archive_dir: Where ``func clean`` moves ``*.orig*`` backups.
    """

    dir: str = "func"
    archive_dir: str = "orig"


@dataclass
class SafetyCfg:
    """Safety guard (funcsplice.yaml: safety:)."""

    safe_mode: bool = True


@dataclass
class ChecksumCfg:
    """Digest used for new headers (funcsplice.yaml: checksum:)."""

    algorithm: str = "sha256"


@dataclass
class OutputCfg:
    """Console output (funcsplice.yaml: output:)."""

    quiet: bool = False


@dataclass
class RunFlags:
    """Per-invocation switches taken from the command line.

    Attributes:
        yes: Answer confirmation prompts with yes; on insert, proceed without
            a new backup when one already exists.
        force: Override existing targets; on insert, version the existing backup.
        bash: Treat the source as a shell script without sniffing it.
    """

    yes: bool = False
    force: bool = False
    bash: bool = False


@dataclass
class FuncConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    workspace: WorkspaceCfg = field(default_factory=WorkspaceCfg)
    safety: SafetyCfg = field(default_factory=SafetyCfg)
    checksum: ChecksumCfg = field(default_factory=ChecksumCfg)
    output: OutputCfg = field(default_factory=OutputCfg)
    flags: RunFlags = field(default_factory=RunFlags)

    def with_flags(self, **changes: Any) -> FuncConfig:
        """Return a copy with RunFlags fields replaced."""
        return replace(self, flags=replace(self.flags, **changes))


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _to_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_STRINGS:
        return True
    if text in _FALSE_STRINGS:
        return False
    raise ConfigError(f"'{key}' must be a boolean (true/false/1/0), got '{value}'.")


def _validate_relative_dir(value: str, key: str) -> str:
    """Raise ConfigError unless *value* is a relative path without '..'."""
    p = PurePath(value)
    if not value or p.is_absolute() or ".." in p.parts:
        raise ConfigError(
            f"{key} must be a relative directory inside the invocation directory: '{value}'\n"
            "  Example: workspace.dir: func"
        )
    return value


def _validate_algorithm(value: str) -> str:
    algo = value.strip().lower()
    if algo not in hashlib.algorithms_available:
        raise ConfigError(
            f"checksum.algorithm '{value}' is not provided by this Python build.\n"
            "  Use one of: sha256, sha1, md5"
        )
    # shake_* digests need an explicit length and cannot tag a checksum
    if hashlib.new(algo).digest_size == 0:
        raise ConfigError(
            f"checksum.algorithm '{value}' has no fixed digest size.\n"
            "  Use one of: sha256, sha1, md5"
        )
    return algo


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    """Emit a UserWarning for unrecognised top-level keys."""
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}'; ignored.",
                UserWarning,
                stacklevel=4,
            )


# ---------------------------------------------------------------------------
# Merge + build
# ---------------------------------------------------------------------------


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict that is *base* deep-merged with *override*."""
    result = dict(base)
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _load_yaml(path: Path) -> dict[str, Any]:
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Config file '{path}' is not valid YAML: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigError(f"Config file '{path}' must contain a mapping at top level.")
    return raw


def _cfg_from_dict(data: dict[str, Any]) -> FuncConfig:
    """Build a *FuncConfig* from a merged raw YAML dict."""
    cfg = FuncConfig()

    if "workspace" in data:
        w = data["workspace"] or {}
        cfg.workspace = WorkspaceCfg(
            dir=_validate_relative_dir(str(w.get("dir", cfg.workspace.dir)), "workspace.dir"),
            archive_dir=_validate_relative_dir(
                str(w.get("archive_dir", cfg.workspace.archive_dir)), "workspace.archive_dir"
            ),
        )

    if "safety" in data:
        s = data["safety"] or {}
        cfg.safety = SafetyCfg(
            safe_mode=_to_bool(s.get("safe_mode", cfg.safety.safe_mode), "safety.safe_mode"),
        )

    if "checksum" in data:
        c = data["checksum"] or {}
        cfg.checksum = ChecksumCfg(
            algorithm=_validate_algorithm(str(c.get("algorithm", cfg.checksum.algorithm))),
        )

    if "output" in data:
        o = data["output"] or {}
        cfg.output = OutputCfg(quiet=_to_bool(o.get("quiet", cfg.output.quiet), "output.quiet"))

    return cfg


def _apply_env_overrides(cfg: FuncConfig) -> FuncConfig:
    """Apply environment variable overrides (layer 2)."""
    if value := os.environ.get("SAFE_MODE"):
        cfg.safety.safe_mode = _to_bool(value, "SAFE_MODE")
    if value := os.environ.get("QUIET_MODE"):
        cfg.output.quiet = _to_bool(value, "QUIET_MODE")
    if value := os.environ.get("FUNCSPLICE_WORKSPACE"):
        cfg.workspace.dir = _validate_relative_dir(value, "FUNCSPLICE_WORKSPACE")
    if value := os.environ.get("FUNCSPLICE_CHECKSUM"):
        cfg.checksum.algorithm = _validate_algorithm(value)
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> FuncConfig:
    """Load and return a merged *FuncConfig*.

    Applies layers in order: global → per-project → env vars.
    CLI flag overrides must be applied by the caller after this function.

    Args:
        project_dir: Directory to search for *funcsplice.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Raises:
        ConfigError: If a config file is malformed or holds an invalid value.
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = project_dir if project_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    # Layer 1: global config
    if global_path.exists():
        raw_global = _load_yaml(global_path)
        _warn_unknown_keys(raw_global, global_path)
        merged = _deep_merge(merged, raw_global)

    # Layer 2: per-project config
    project_cfg_path = search_dir / _PROJECT_CONFIG_NAME
    if project_cfg_path.exists():
        raw_project = _load_yaml(project_cfg_path)
        _warn_unknown_keys(raw_project, project_cfg_path)
        merged = _deep_merge(merged, raw_project)

    cfg = _cfg_from_dict(merged)

    # Layer 3: env var overrides
    return _apply_env_overrides(cfg)
