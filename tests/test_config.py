"""
Tests for config.py configuration management.

Tests configuration loading, merging, environment variables, and global
config management.
"""

import pytest
import tempfile
import os
import yaml
from pathlib import Path
from unittest.mock import patch

from vcfconvert.config import VcfConvertConfig, get_config, set_config, load_config


class TestVcfConvertConfig:
    """Test VcfConvertConfig class functionality."""

    def test_load_defaults_when_no_file(self):
        """Test fallback defaults when defaults.yaml doesn't exist."""
        with patch("vcfconvert.config.Path.exists", return_value=False):
            config = VcfConvertConfig._load_defaults()

        assert config["gensample"]["tag"] == "GT"
        assert config["gensample"]["gen_suffix"] == ".gen.gz"
        assert config["tsv2vcf"]["columns"] == "ID,CHROM,POS,AA"
        assert config["tsv2vcf"]["output_type"] == "v"
        assert config["output"]["float_format"] == "%f"

    def test_shipped_defaults_match_fallback(self):
        """The packaged defaults.yaml carries the same values as the fallback."""
        shipped = VcfConvertConfig._load_defaults()
        with patch("vcfconvert.config.Path.exists", return_value=False):
            fallback = VcfConvertConfig._load_defaults()
        assert shipped == fallback

    def test_load_yaml_invalid_yaml(self):
        with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
            f.write("gensample: [unclosed")
            temp_path = Path(f.name)

        try:
            with pytest.raises(ValueError, match="Invalid YAML"):
                VcfConvertConfig._load_yaml(temp_path)
        finally:
            temp_path.unlink()

    def test_load_yaml_file_not_found(self):
        with pytest.raises(FileNotFoundError, match="Could not read config file"):
            VcfConvertConfig._load_yaml(Path("/nonexistent/config.yaml"))

    def test_load_yaml_empty_file(self):
        with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
            temp_path = Path(f.name)

        try:
            assert VcfConvertConfig._load_yaml(temp_path) == {}
        finally:
            temp_path.unlink()

    def test_merge_configs_nested(self):
        base = {"gensample": {"tag": "GT", "gen_suffix": ".gen.gz"}, "output": {}}
        overlay = {"gensample": {"tag": "PL"}, "extra": 1}

        result = VcfConvertConfig._merge_configs(base, overlay)

        assert result["gensample"] == {"tag": "PL", "gen_suffix": ".gen.gz"}
        assert result["extra"] == 1
        # Base is left untouched
        assert base["gensample"]["tag"] == "GT"

    def test_apply_env_overrides_with_values(self):
        env = {"VCFCONVERT_TAG": "PL", "VCFCONVERT_OUTPUT_TYPE": "z"}
        with patch.dict(os.environ, env):
            config = VcfConvertConfig._apply_env_overrides({"gensample": {"tag": "GT"}})

        assert config["gensample"]["tag"] == "PL"
        assert config["tsv2vcf"]["output_type"] == "z"

    def test_apply_env_overrides_invalid_value(self):
        with patch.dict(os.environ, {"VCFCONVERT_OUTPUT_TYPE": "x"}):
            with pytest.raises(ValueError, match="VCFCONVERT_OUTPUT_TYPE"):
                VcfConvertConfig._apply_env_overrides({})

    def test_apply_env_overrides_empty_columns(self):
        with patch.dict(os.environ, {"VCFCONVERT_COLUMNS": ""}):
            with pytest.raises(ValueError):
                VcfConvertConfig._apply_env_overrides({})

    def test_load_with_user_config(self):
        user = {"tsv2vcf": {"columns": "CHROM,POS,ID,AA"}, "output": {"float_format": "%.3f"}}
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "user.yaml"
            with open(path, "w") as f:
                yaml.dump(user, f)

            with patch.dict(os.environ, {}, clear=False):
                for var in ("VCFCONVERT_TAG", "VCFCONVERT_COLUMNS", "VCFCONVERT_OUTPUT_TYPE"):
                    os.environ.pop(var, None)
                config = VcfConvertConfig.load(path)

        assert config.get_tsv2vcf_setting("columns") == "CHROM,POS,ID,AA"
        assert config.get_tsv2vcf_setting("output_type") == "v"
        assert config.get_output_setting("float_format") == "%.3f"
        assert config.get_gensample_setting("tag") == "GT"

    def test_getters_default(self):
        config = VcfConvertConfig(gensample={}, tsv2vcf={}, output={})
        assert config.get_gensample_setting("tag", "GT") == "GT"
        assert config.get_output_setting("missing") is None


class TestGlobalConfig:
    """Test global configuration accessors."""

    def test_get_config_lazy_loading(self):
        with patch.object(VcfConvertConfig, "load") as mock_load:
            mock_load.return_value = VcfConvertConfig({}, {}, {})
            first = get_config()
            second = get_config()

        assert first is second
        mock_load.assert_called_once_with()

    def test_set_config(self):
        config = VcfConvertConfig({"tag": "PL"}, {}, {})
        set_config(config)
        assert get_config() is config

    def test_load_config(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "cfg.yaml"
            path.write_text("gensample:\n  tag: PL\n")
            with patch.dict(os.environ, {}, clear=False):
                os.environ.pop("VCFCONVERT_TAG", None)
                config = load_config(path)

        assert config.get_gensample_setting("tag") == "PL"
        assert get_config() is config
