from __future__ import annotations
from dataclasses import dataclass, field, fields, replace, asdict
from typing import Any, Dict, List
import yaml
from pathlib import Path

from .errors import ConfigError
from .utils.logging import get_logger

logger = get_logger("pyv-cachesim.config")

# Read before any -c/--config file, like a shell rc file.
DEFAULT_RC_FILE = ".cacherc"


def _is_power_of_two(n: int) -> bool:
    return (n > 0) and (n & (n - 1) == 0)


@dataclass
class CacheConfig:
    """Parameters of one cache level, as read from a config section."""
    block_size: int = 32
    cache_size: int = 8192
    assoc: int = 1          # 0 means fully associative
    hit_time: int = 1
    miss_time: int = 1
    transfer_time: int = 0  # only used when this level supplies an upper level
    bus_width: int = 0

    @property
    def sets_in_cache(self) -> int:
        return self.cache_size // (self.assoc * self.block_size)

    def resolved(self, name: str) -> CacheConfig:
        """Returns a copy with fully-associative caches expanded and sizes checked."""
        if self.block_size <= 0:
            raise ConfigError(f"{name}: block_size must be positive, got {self.block_size}.")
        if self.cache_size <= 0:
            raise ConfigError(f"{name}: cache_size must be positive, got {self.cache_size}.")
        if self.assoc < 0:
            raise ConfigError(f"{name}: assoc must be zero (fully associative) or positive, got {self.assoc}.")
        for key in ("hit_time", "miss_time", "transfer_time", "bus_width"):
            if getattr(self, key) < 0:
                raise ConfigError(f"{name}: {key} must not be negative.")

        assoc = self.assoc or self.cache_size // self.block_size
        if assoc == 0 or self.cache_size < assoc * self.block_size:
            raise ConfigError(
                f"{name}: cache_size {self.cache_size} cannot hold one set of "
                f"{assoc or 1} x {self.block_size}-byte blocks.")

        resolved = replace(self, assoc=assoc)
        if not (_is_power_of_two(resolved.block_size) and _is_power_of_two(resolved.sets_in_cache)):
            logger.warning("%s: block_size and sets_in_cache should be powers of two; "
                           "address decoding is undefined otherwise.", name)
        return resolved


@dataclass
class MainMemConfig:
    """Timing parameters of main memory."""
    sendaddr: int = 10
    ready: int = 50
    chunktime: int = 15
    chunksize: int = 8

    def resolved(self) -> MainMemConfig:
        if self.chunksize <= 0:
            raise ConfigError(f"Main_Mem: chunksize must be positive, got {self.chunksize}.")
        for key in ("sendaddr", "ready", "chunktime"):
            if getattr(self, key) < 0:
                raise ConfigError(f"Main_Mem: {key} must not be negative.")
        return replace(self)


@dataclass
class SimConfig:
    """Cache simulator configuration. Defaults are the reference memory system."""
    l1: CacheConfig = field(default_factory=CacheConfig)
    l2: CacheConfig = field(default_factory=lambda: CacheConfig(
        block_size=64, cache_size=32768, assoc=1, hit_time=5, miss_time=7,
        transfer_time=5, bus_width=16))
    main_mem: MainMemConfig = field(default_factory=MainMemConfig)

    # Reporting
    report_dir: str = "out/default_run"

    # Config files merged so far, in order
    config_files: List[str] = field(default_factory=list)

    # Section name in the config file -> attribute holding it
    SECTIONS = {
        "L1_cache": "l1",
        "L2_cache": "l2",
        "Main_Mem": "main_mem",
    }

    def update_from_dict(self, data: Dict[str, Any], source: str = "<dict>"):
        """Merges config sections field-by-field; unset fields keep their values."""
        if not isinstance(data, dict):
            raise ConfigError(f"{source}: expected a mapping of sections, got {type(data).__name__}.")
        for section, values in data.items():
            attr = self.SECTIONS.get(section)
            if attr is None:
                logger.warning("%s: ignoring unknown section '%s'", source, section)
                continue
            if not isinstance(values, dict):
                raise ConfigError(f"{source}: section '{section}' must be a mapping.")
            target = getattr(self, attr)
            known = {f.name for f in fields(target)}
            for key, value in values.items():
                if key not in known:
                    logger.warning("%s: ignoring unknown key '%s.%s'", source, section, key)
                    continue
                if isinstance(value, bool) or not isinstance(value, int):
                    raise ConfigError(f"{source}: '{section}.{key}' must be an integer, got {value!r}.")
                setattr(target, key, value)

    def update_from_yaml(self, yaml_path: str):
        """Updates config fields from a YAML file."""
        try:
            with open(yaml_path, 'r') as f:
                yaml_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"{yaml_path}: {e}") from e
        self.update_from_dict(yaml_config or {}, source=yaml_path)
        self.config_files.append(yaml_path)

    def resolve(self) -> SimConfig:
        """Returns a copy ready for building a hierarchy (associativity resolved, invariants checked)."""
        l2 = self.l2.resolved("L2_cache")
        if l2.bus_width <= 0:
            raise ConfigError(f"L2_cache: bus_width must be positive, got {l2.bus_width}.")
        return replace(
            self,
            l1=self.l1.resolved("L1_cache"),
            l2=l2,
            main_mem=self.main_mem.resolved(),
            config_files=list(self.config_files),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {section: asdict(getattr(self, attr)) for section, attr in self.SECTIONS.items()}

    def to_yaml(self) -> str:
        return yaml.safe_dump(self.to_dict(), sort_keys=False)

    @classmethod
    def from_args(cls, args) -> SimConfig:
        """Factory method to create a SimConfig from parsed argparse arguments."""
        config = cls()

        # 1. The rc file in the working directory, if any
        if Path(DEFAULT_RC_FILE).exists():
            config.update_from_yaml(DEFAULT_RC_FILE)

        # 2. Each config file, later ones overriding earlier ones
        for path in getattr(args, 'config', None) or []:
            if Path(path).exists():
                config.update_from_yaml(path)
            else:
                logger.warning("Config file %s not found.", path)

        # 3. Override with command-line arguments
        if getattr(args, 'report', None):
            config.report_dir = args.report

        return config
