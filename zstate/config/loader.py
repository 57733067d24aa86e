"""YAML desired-state loader."""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Tuple, Type

import yaml
from pydantic import ValidationError

from zstate.core.errors import ConfigValidationError
from zstate.core.logger import get_logger
from zstate.models.resources import FilesystemSpec, PoolSpec, ResourceSpec, VolumeSpec

logger = get_logger(__name__)

# Top-level YAML section -> (resource kind, record model). Order is creation order.
SECTIONS: Dict[str, Tuple[str, Type[ResourceSpec]]] = {
    "pools": ("pool", PoolSpec),
    "filesystems": ("filesystem", FilesystemSpec),
    "volumes": ("volume", VolumeSpec),
}

KIND_MODELS: Dict[str, Type[ResourceSpec]] = {kind: model for kind, model in SECTIONS.values()}


@dataclass
class DesiredState:
    pools: List[PoolSpec] = field(default_factory=list)
    filesystems: List[FilesystemSpec] = field(default_factory=list)
    volumes: List[VolumeSpec] = field(default_factory=list)

    def items(self) -> Iterator[Tuple[str, ResourceSpec]]:
        """(kind, record) pairs, pools first so datasets can land on them."""
        for spec in self.pools:
            yield "pool", spec
        for spec in self.filesystems:
            yield "filesystem", spec
        for spec in self.volumes:
            yield "volume", spec

    def __len__(self) -> int:
        return len(self.pools) + len(self.filesystems) + len(self.volumes)


def format_validation_error(where: str, error: ValidationError) -> str:
    lines = [f"Invalid {where}:"]
    for err in error.errors():
        loc = ".".join(str(part) for part in err["loc"]) or "(record)"
        lines.append(f"  {loc}: {err['msg']}")
    return "\n".join(lines)


def build_record(kind: str, name: str, body: Any, default_property_mode: str = "defined") -> ResourceSpec:
    """Validate one YAML entry into its record model."""
    if body is None:
        body = {}
    if not isinstance(body, dict):
        raise ConfigValidationError(f"{kind} '{name}' must be a mapping, got {type(body).__name__}")

    data = dict(body)
    data["name"] = name
    data.setdefault("property_mode", default_property_mode)

    try:
        return KIND_MODELS[kind].model_validate(data)
    except ValidationError as e:
        raise ConfigValidationError(format_validation_error(f"{kind} '{name}'", e)) from e


class ConfigLoader:
    """Loads a zstate.yml file into desired-state records."""

    def __init__(self, config_path: str = "zstate.yml", default_property_mode: str = "defined"):
        self.config_path = Path(config_path)
        self.default_property_mode = default_property_mode
        self.raw_config = None

    def load(self) -> DesiredState:
        if not self.config_path.exists():
            raise FileNotFoundError(f"Config file not found: {self.config_path}")

        try:
            with open(self.config_path) as f:
                self.raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigValidationError(f"Config file {self.config_path} is not valid YAML: {e}") from e

        return self.parse(self.raw_config)

    def parse(self, raw: Any) -> DesiredState:
        if not raw:
            raise ConfigValidationError("Config file is empty.")
        if not isinstance(raw, dict):
            raise ConfigValidationError("Config file must be a mapping of sections")

        unknown = sorted(set(raw) - set(SECTIONS))
        if unknown:
            raise ConfigValidationError(
                f"Unknown section(s): {', '.join(unknown)}. Expected: {', '.join(SECTIONS)}"
            )

        state = DesiredState()
        for section, (kind, _) in SECTIONS.items():
            entries = raw.get(section) or {}
            if not isinstance(entries, dict):
                raise ConfigValidationError(f"'{section}' must map names to {kind} definitions")
            records = getattr(state, section)
            for name, body in entries.items():
                records.append(build_record(kind, str(name), body, self.default_property_mode))

        logger.debug(
            f"Loaded {len(state.pools)} pool(s), {len(state.filesystems)} filesystem(s), "
            f"{len(state.volumes)} volume(s) from {self.config_path}"
        )
        return state
