from dataclasses import dataclass, field, fields, replace, asdict
from typing import Tuple
import yaml
from pathlib import Path

from core.errors import ConfigError

DEFAULT_VIDEO_EXTENSIONS = (
    '.wmv', '.avi', '.mp4', '.mkv', '.flv',
    '.mpg', '.m4v', '.mov', '.divx', '.mpeg',
)


@dataclass(frozen=True)
class FrameSamplingConfig:
    """Configuration for frame extraction"""
    frame_count: int = 5
    backend: str = "ffmpeg"  # Options: ffmpeg, opencv
    ffmpeg_path: str = "ffmpeg"
    ffprobe_path: str = "ffprobe"
    timeout_seconds: float = 60.0
    scale_width: int = 128


@dataclass(frozen=True)
class MatchingConfig:
    """Configuration for duplicate classification"""
    hamming_threshold: int = 16
    match_ratio_threshold: float = 0.6
    count_every_hit: bool = True
    digest_algorithm: str = "sha1"


@dataclass(frozen=True)
class ScanConfig:
    """Configuration for directory traversal"""
    extensions: Tuple[str, ...] = DEFAULT_VIDEO_EXTENSIONS


@dataclass(frozen=True)
class SystemConfig:
    """System-wide configuration"""
    n_workers: int = 1
    log_level: str = "INFO"
    log_dir: str = "logs"

    # Frame extraction
    frame_sampling: FrameSamplingConfig = field(
        default_factory=FrameSamplingConfig
    )

    # Duplicate classification
    matching: MatchingConfig = field(
        default_factory=MatchingConfig
    )

    # Directory traversal
    scan: ScanConfig = field(
        default_factory=ScanConfig
    )

    def __post_init__(self):
        self.validate()

    def validate(self):
        """Raise ConfigError on values the scanner cannot work with"""
        if self.n_workers < 1:
            raise ConfigError(f"n_workers must be >= 1, got {self.n_workers}")
        if self.frame_sampling.frame_count < 1:
            raise ConfigError(f"frame_count must be >= 1, got {self.frame_sampling.frame_count}")
        if self.frame_sampling.backend not in ('ffmpeg', 'opencv'):
            raise ConfigError(f"Unknown frame source backend: {self.frame_sampling.backend}")
        if self.frame_sampling.timeout_seconds <= 0:
            raise ConfigError("timeout_seconds must be positive")
        if self.matching.hamming_threshold < 0:
            raise ConfigError(f"hamming_threshold must be >= 0, got {self.matching.hamming_threshold}")
        if not 0.0 <= self.matching.match_ratio_threshold <= 1.0:
            raise ConfigError(
                f"match_ratio_threshold must be between 0.0 and 1.0, "
                f"got {self.matching.match_ratio_threshold}"
            )
        if not self.scan.extensions:
            raise ConfigError("At least one video extension is required")

    def with_overrides(self, **overrides) -> 'SystemConfig':
        """
        Copy of this config with dotted-key overrides applied

        Keys look like 'matching.hamming_threshold' or 'n_workers';
        None values are skipped so unset command line flags can be passed
        straight through.
        """
        sections = {
            'frame_sampling': {},
            'matching': {},
            'scan': {},
        }
        top_level = {}

        for key, value in overrides.items():
            if value is None:
                continue
            section, _, name = key.rpartition('.')
            if section:
                if section not in sections:
                    raise ConfigError(f"Unknown config section: {section}")
                sections[section][name] = value
            else:
                top_level[name] = value

        for name, values in sections.items():
            if values:
                top_level[name] = replace(getattr(self, name), **values)

        return replace(self, **top_level)

    def save(self, path: str = "config.yaml"):
        """Save configuration to YAML file"""
        config_dict = asdict(self)
        config_dict['scan']['extensions'] = list(self.scan.extensions)

        with open(path, 'w') as f:
            yaml.dump(config_dict, f, default_flow_style=False, indent=2)

    @classmethod
    def load(cls, path: str = "config.yaml") -> 'SystemConfig':
        """Load configuration from YAML file"""
        if not Path(path).exists():
            return cls()  # Return default config

        with open(path, 'r') as f:
            try:
                config_dict = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigError(f"Cannot parse {path}: {e}")

        if not isinstance(config_dict, dict):
            raise ConfigError(f"{path} must contain a mapping")

        defaults = cls()

        # Load frame extraction settings
        frame_sampling = _section(FrameSamplingConfig, config_dict.get('frame_sampling'), 'frame_sampling')

        # Load classification settings
        matching = _section(MatchingConfig, config_dict.get('matching'), 'matching')

        # Load traversal settings
        scan_dict = dict(_mapping('scan', config_dict.get('scan')))
        if 'extensions' in scan_dict:
            scan_dict['extensions'] = _extensions(scan_dict['extensions'])
        scan = _section(ScanConfig, scan_dict, 'scan')

        return cls(
            n_workers=config_dict.get('n_workers', defaults.n_workers),
            log_level=config_dict.get('log_level', defaults.log_level),
            log_dir=config_dict.get('log_dir', defaults.log_dir),
            frame_sampling=frame_sampling,
            matching=matching,
            scan=scan,
        )


def _mapping(name, values):
    if values is None:
        return {}
    if not isinstance(values, dict):
        raise ConfigError(f"'{name}' must be a mapping, got {type(values).__name__}")
    return values


def _extensions(values):
    # A single extension may be written as a bare string
    if isinstance(values, str):
        values = [values]
    if not isinstance(values, (list, tuple)):
        raise ConfigError(f"'scan.extensions' must be a list, got {type(values).__name__}")
    if not all(isinstance(ext, str) and ext for ext in values):
        raise ConfigError("'scan.extensions' entries must be non-empty strings")
    return tuple(
        ext.lower() if ext.startswith('.') else f".{ext.lower()}"
        for ext in values
    )


def _section(section_cls, values, name):
    """Build a config section from a YAML mapping, ignoring unknown keys"""
    values = _mapping(name, values)
    if not values:
        return section_cls()
    known = {f.name for f in fields(section_cls)}
    return section_cls(**{k: v for k, v in values.items() if k in known})
