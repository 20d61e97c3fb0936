"""
Configuration management for vcfconvert.

This module handles loading and merging configuration from:
1. Built-in defaults (config/defaults.yaml)
2. User-specified config files (--config)
3. Environment variables
4. Command-line overrides
"""

from __future__ import annotations
import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional
from dataclasses import dataclass


@dataclass
class VcfConvertConfig:
    """
    Complete vcfconvert configuration.

    Holds the defaults used when an option is not given on the command line.
    """

    # gen/sample conversion settings
    gensample: Dict[str, Any]

    # tsv2vcf conversion settings
    tsv2vcf: Dict[str, Any]

    # Output formatting
    output: Dict[str, Any]

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> VcfConvertConfig:
        """
        Load configuration from files and environment.

        Args:
            config_path: Optional path to user config file

        Returns:
            Merged configuration object
        """
        config = cls._load_defaults()

        if config_path and config_path.exists():
            user_config = cls._load_yaml(config_path)
            config = cls._merge_configs(config, user_config)

        config = cls._apply_env_overrides(config)

        return cls(
            gensample=config.get("gensample", {}),
            tsv2vcf=config.get("tsv2vcf", {}),
            output=config.get("output", {}),
        )

    @staticmethod
    def _load_defaults() -> Dict[str, Any]:
        """Load built-in default configuration."""
        defaults_path = Path(__file__).parent / "config" / "defaults.yaml"
        if not defaults_path.exists():
            # Fallback to minimal defaults if file doesn't exist
            return {
                "gensample": {
                    "tag": "GT",
                    "gen_suffix": ".gen.gz",
                    "samples_suffix": ".samples",
                },
                "tsv2vcf": {
                    "columns": "ID,CHROM,POS,AA",
                    "output_type": "v",
                },
                "output": {"float_format": "%f"},
            }
        return VcfConvertConfig._load_yaml(defaults_path)

    @staticmethod
    def _load_yaml(path: Path) -> Dict[str, Any]:
        """Load YAML configuration file."""
        try:
            with open(path, "r") as f:
                return yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in config file {path}: {e}")
        except OSError as e:
            raise FileNotFoundError(f"Could not read config file {path}: {e}")

    @staticmethod
    def _merge_configs(base: Dict[str, Any], overlay: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively merge two configuration dictionaries."""
        result = base.copy()

        for key, value in overlay.items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key] = VcfConvertConfig._merge_configs(result[key], value)
            else:
                result[key] = value

        return result

    @staticmethod
    def _apply_env_overrides(config: Dict[str, Any]) -> Dict[str, Any]:
        """Apply environment variable overrides to configuration."""
        env_mappings = {
            "VCFCONVERT_TAG": ("gensample", "tag", ("GT", "PL")),
            "VCFCONVERT_COLUMNS": ("tsv2vcf", "columns", None),
            "VCFCONVERT_OUTPUT_TYPE": ("tsv2vcf", "output_type", ("b", "u", "z", "v")),
        }

        for env_var, (section, key, allowed) in env_mappings.items():
            value = os.environ.get(env_var)
            if value is not None:
                if not value or (allowed is not None and value not in allowed):
                    raise ValueError(f"Invalid value for {env_var}: {value}")
                if section not in config:
                    config[section] = {}
                config[section][key] = value

        return config

    def get_gensample_setting(self, key: str, default: Any = None) -> Any:
        """Get a gen/sample conversion setting."""
        return self.gensample.get(key, default)

    def get_tsv2vcf_setting(self, key: str, default: Any = None) -> Any:
        """Get a tsv2vcf conversion setting."""
        return self.tsv2vcf.get(key, default)

    def get_output_setting(self, key: str, default: Any = None) -> Any:
        """Get an output formatting setting."""
        return self.output.get(key, default)


# Global configuration instance
_config: Optional[VcfConvertConfig] = None


def get_config() -> VcfConvertConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = VcfConvertConfig.load()
    return _config


def set_config(config: VcfConvertConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config


def load_config(config_path: Optional[Path] = None) -> VcfConvertConfig:
    """Load and set configuration from file."""
    config = VcfConvertConfig.load(config_path)
    set_config(config)
    return config
