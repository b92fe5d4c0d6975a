"""
Configuration management for the Smart Detection engine
Defaults, then the YAML file, then SMART_DETECTION_* environment variables
"""

import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional
from dataclasses import dataclass, asdict, field
from dotenv import load_dotenv

from ..utils.logger import get_logger
from ..utils.exceptions import ConfigurationError

logger = get_logger(__name__)

# .env values feed the SMART_DETECTION_* overrides
load_dotenv()

@dataclass
class ScalingConfig:
    """Screen metrics / downscaling settings"""
    default_quality: float = 100.0
    default_tag: str = 'default'

@dataclass
class MatchingConfig:
    """Template matching settings"""
    template_matching_method: str = 'cv2.TM_CCOEFF_NORMED'
    default_threshold: int = 10

@dataclass
class OCRConfig:
    """OCR (Tesseract) settings"""
    language: str = 'eng'
    tesseract_cmd: Optional[str] = None
    max_cycles: int = 100
    preprocess: bool = False
    tesseract_config: str = ''

@dataclass
class LoggingConfig:
    """Logging configuration"""
    level: str = 'INFO'

@dataclass
class DetectionConfig:
    """Main detection engine configuration"""
    scaling: ScalingConfig = field(default_factory=ScalingConfig)
    matching: MatchingConfig = field(default_factory=MatchingConfig)
    ocr: OCRConfig = field(default_factory=OCRConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

SECTIONS = {
    'scaling': ScalingConfig,
    'matching': MatchingConfig,
    'ocr': OCRConfig,
    'logging': LoggingConfig,
}

# variable -> (section, key, converter)
ENV_OVERRIDES = {
    'SMART_DETECTION_QUALITY': ('scaling', 'default_quality', float),
    'SMART_DETECTION_THRESHOLD': ('matching', 'default_threshold', int),
    'SMART_DETECTION_OCR_LANG': ('ocr', 'language', str),
    'SMART_DETECTION_TESSERACT_CMD': ('ocr', 'tesseract_cmd', str),
    'SMART_DETECTION_OCR_MAX_CYCLES': ('ocr', 'max_cycles', int),
    'SMART_DETECTION_LOG_LEVEL': ('logging', 'level', str),
}

class ConfigManager:
    """
    Loads, saves and hands out the detection engine settings
    """

    def __init__(self, config_file: str = "config/detection_config.yaml"):
        """
        Args:
            config_file: YAML file; a missing file means defaults (it is not created)
        """
        self.config_file = Path(config_file)
        self.config: Optional[DetectionConfig] = None
        self._load_config()

    def _load_config(self) -> None:
        """Build the settings: section defaults, then the YAML file, then the environment"""
        try:
            settings = {name: {} for name in SECTIONS}

            if self.config_file.exists():
                logger.info(f"Reading detection settings from {self.config_file}")
                with open(self.config_file, 'r', encoding='utf-8') as f:
                    settings = self._merge_configs(settings, yaml.safe_load(f) or {})
            else:
                logger.debug(f"No settings file at {self.config_file}, detection defaults apply")

            self._apply_environment_overrides(settings)

            self.config = DetectionConfig(
                **{name: section(**settings.get(name, {})) for name, section in SECTIONS.items()}
            )
            logger.debug(f"Detection settings ready: {self._to_dict(self.config)}")

        except Exception as e:
            logger.error(f"Invalid detection settings in {self.config_file}: {e}")
            raise ConfigurationError(f"Cannot load detection settings: {e}")

    def _merge_configs(self, base: Dict, override: Dict) -> Dict:
        """Section-wise merge, nested mappings merge key by key"""
        merged = dict(base)
        for key, value in override.items():
            if isinstance(merged.get(key), dict) and isinstance(value, dict):
                merged[key] = self._merge_configs(merged[key], value)
            else:
                merged[key] = value
        return merged

    def _apply_environment_overrides(self, settings: Dict) -> None:
        """Non-empty SMART_DETECTION_* variables replace file values"""
        for variable, (section, key, convert) in ENV_OVERRIDES.items():
            raw = os.getenv(variable)
            if raw:
                settings[section][key] = convert(raw)

    def _to_dict(self, config: DetectionConfig) -> Dict[str, Any]:
        return {name: asdict(getattr(config, name)) for name in SECTIONS}

    def _write(self, config: DetectionConfig) -> None:
        self.config_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_file, 'w', encoding='utf-8') as f:
            yaml.dump(self._to_dict(config), f, default_flow_style=False, indent=2)

    def create_default_config_file(self) -> None:
        """Write the detection defaults to the settings file"""
        try:
            self._write(DetectionConfig())
            logger.info(f"Default detection settings written to {self.config_file}")
        except OSError as e:
            logger.error(f"Cannot write {self.config_file}: {e}")
            raise ConfigurationError(f"Cannot write detection settings: {e}")

    def get_config(self) -> DetectionConfig:
        """Get the current configuration"""
        if self.config is None:
            raise ConfigurationError("Configuration not loaded")
        return self.config

    def get_scaling_config(self) -> ScalingConfig:
        """Get scaling configuration"""
        return self.get_config().scaling

    def get_matching_config(self) -> MatchingConfig:
        """Get matching configuration"""
        return self.get_config().matching

    def get_ocr_config(self) -> OCRConfig:
        """Get OCR configuration"""
        return self.get_config().ocr

    def get_logging_config(self) -> LoggingConfig:
        """Get logging configuration"""
        return self.get_config().logging

    def save_config(self) -> None:
        """Persist the current settings (including in-memory edits)"""
        try:
            self._write(self.get_config())
            logger.info(f"Detection settings saved to {self.config_file}")
        except OSError as e:
            logger.error(f"Cannot write {self.config_file}: {e}")
            raise ConfigurationError(f"Cannot write detection settings: {e}")

    def reload_config(self) -> None:
        """Drop in-memory settings and read them again"""
        logger.info(f"Reloading detection settings from {self.config_file}")
        self.config = None
        self._load_config()

# Shared settings for detectors built without an explicit configuration
config_manager = ConfigManager()
