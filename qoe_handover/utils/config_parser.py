"""
Configuration Parser for the QoE/QoS-aware Handover Framework

This module handles loading and validation of configuration files.
"""

import json
import logging
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict

import jsonschema
import yaml

from ..core.config import HandoverConfig, SimulationConfig, QOE_MAX, QOE_MIN, RSRQ_MAX, RSRQ_MIN

logger = logging.getLogger(__name__)

_RSRQ_RANGE = {"type": "integer", "minimum": RSRQ_MIN, "maximum": RSRQ_MAX}


class ConfigParser:
    """
    Configuration parser and validator for handover and simulation parameters
    """

    # JSON Schema for configuration validation
    CONFIG_SCHEMA = {
        "type": "object",
        "properties": {
            "simulation": {
                "type": "object",
                "properties": {
                    "simulation_time": {"type": "number", "minimum": 0.1},
                    "random_seed": {"type": ["integer", "null"]},
                    "log_level": {"type": "string", "enum": ["DEBUG", "INFO", "WARNING", "ERROR"]},
                    "output_directory": {"type": "string"},
                    "enable_plots": {"type": "boolean"}
                },
                "required": ["simulation_time"],
                "additionalProperties": False
            },
            "network": {
                "type": "object",
                "properties": {
                    "num_cells": {"type": "integer", "minimum": 1},
                    "cell_spacing": {"type": "number", "minimum": 10},
                    "rsrq_path_slope": {"type": "number", "minimum": 0},
                    "rsrq_noise_std": {"type": "number", "minimum": 0}
                },
                "required": ["num_cells"],
                "additionalProperties": False
            },
            "terminals": {
                "type": "object",
                "properties": {
                    "num_terminals": {"type": "integer", "minimum": 1},
                    "initial_positions": {
                        "type": "array",
                        "items": {"type": "number"}
                    },
                    "terminal_speed": {"type": "number", "minimum": 0}
                },
                "required": ["num_terminals"],
                "additionalProperties": False
            },
            "handover": {
                "type": "object",
                "properties": {
                    "serving_cell_threshold": _RSRQ_RANGE,
                    "neighbour_cell_offset": _RSRQ_RANGE,
                    "apply_neighbour_offset": {"type": "boolean"},
                    "rsrq_weight": {"type": "number", "minimum": 0},
                    "qoe_weight": {"type": "number", "minimum": 0},
                    "qos_weight": {"type": "number", "minimum": 0},
                    "warmup_delay": {"type": "number", "minimum": 0},
                    "score_floor": {"type": "number"},
                    "qoe_satisfaction_ceiling": {"type": "number", "minimum": QOE_MIN, "maximum": QOE_MAX},
                    "time_to_trigger": {"type": "number", "minimum": 0},
                    "report_interval": {"type": "number", "exclusiveMinimum": 0},
                    "a4_threshold": _RSRQ_RANGE
                },
                "additionalProperties": False
            },
            "execution": {
                "type": "object",
                "properties": {
                    "preparation_time": {"type": "number", "minimum": 0},
                    "execution_time": {"type": "number", "minimum": 0},
                    "completion_time": {"type": "number", "minimum": 0}
                },
                "additionalProperties": False
            }
        },
        "required": ["simulation", "network", "terminals"],
        "additionalProperties": False
    }

    @classmethod
    def load_config(cls, config_path: str) -> SimulationConfig:
        """
        Load configuration from a JSON or YAML file

        Args:
            config_path: Path to configuration file

        Returns:
            SimulationConfig object

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If the file format is unsupported or a value is out of range
            json.JSONDecodeError: If JSON is invalid
            yaml.YAMLError: If YAML is invalid
            jsonschema.ValidationError: If config doesn't match schema
        """
        config_file = Path(config_path)

        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        logger.info(f"Loading configuration from {config_path}")

        suffix = config_file.suffix.lower()
        with open(config_file, 'r') as f:
            if suffix in ('.yaml', '.yml'):
                try:
                    config_data = yaml.safe_load(f)
                except yaml.YAMLError as e:
                    logger.error(f"Invalid YAML in configuration file: {e}")
                    raise
            elif suffix == '.json':
                try:
                    config_data = json.load(f)
                except json.JSONDecodeError as e:
                    logger.error(f"Invalid JSON in configuration file: {e}")
                    raise
            else:
                logger.error(f"Unsupported configuration file format: {config_file.suffix}")
                raise ValueError(f"Unsupported configuration file format: {config_file.suffix}")

        cls.validate_config(config_data)
        logger.info("Configuration loaded and validated successfully")

        return cls._dict_to_config(config_data)

    @classmethod
    def validate_config(cls, config_data: Dict[str, Any]):
        """
        Validate configuration against schema

        Raises:
            jsonschema.ValidationError: If config is invalid
        """
        try:
            jsonschema.validate(config_data, cls.CONFIG_SCHEMA)
        except jsonschema.ValidationError as e:
            logger.error(f"Configuration validation error: {e.message}")
            raise

    @classmethod
    def _dict_to_config(cls, config_data: Dict[str, Any]) -> SimulationConfig:
        """Convert configuration dictionary to SimulationConfig object"""
        sim_config = config_data.get('simulation', {})
        net_config = config_data.get('network', {})
        terminal_config = config_data.get('terminals', {})
        exec_config = config_data.get('execution', {})

        handover = HandoverConfig(**config_data.get('handover', {}))
        handover.validate()

        return SimulationConfig(
            # Simulation parameters
            simulation_time=sim_config.get('simulation_time', 60.0),
            random_seed=sim_config.get('random_seed'),
            log_level=sim_config.get('log_level', 'INFO'),
            output_directory=sim_config.get('output_directory', 'results'),
            enable_plots=sim_config.get('enable_plots', True),

            # Network parameters
            num_cells=net_config.get('num_cells', 3),
            cell_spacing=net_config.get('cell_spacing', 500.0),
            rsrq_path_slope=net_config.get('rsrq_path_slope', 0.04),
            rsrq_noise_std=net_config.get('rsrq_noise_std', 1.0),

            # Terminal parameters
            num_terminals=terminal_config.get('num_terminals', 4),
            initial_positions=terminal_config.get('initial_positions'),
            terminal_speed=terminal_config.get('terminal_speed', 15.0),

            # Handover execution
            preparation_time=exec_config.get('preparation_time', 0.05),
            execution_time=exec_config.get('execution_time', 0.02),
            completion_time=exec_config.get('completion_time', 0.01),

            handover=handover
        )

    @classmethod
    def config_to_dict(cls, config: SimulationConfig) -> Dict[str, Any]:
        """Convert a SimulationConfig back to the sectioned file layout"""
        return {
            "simulation": {
                "simulation_time": config.simulation_time,
                "random_seed": config.random_seed,
                "log_level": config.log_level,
                "output_directory": config.output_directory,
                "enable_plots": config.enable_plots
            },
            "network": {
                "num_cells": config.num_cells,
                "cell_spacing": config.cell_spacing,
                "rsrq_path_slope": config.rsrq_path_slope,
                "rsrq_noise_std": config.rsrq_noise_std
            },
            "terminals": {
                "num_terminals": config.num_terminals,
                "initial_positions": config.initial_positions or [],
                "terminal_speed": config.terminal_speed
            },
            "handover": asdict(config.handover),
            "execution": {
                "preparation_time": config.preparation_time,
                "execution_time": config.execution_time,
                "completion_time": config.completion_time
            }
        }

    @classmethod
    def save_config(cls, config_data: Dict[str, Any], output_path: str):
        """Write a configuration dictionary as JSON or YAML, by file extension"""
        path = Path(output_path)
        try:
            with open(path, 'w') as f:
                if path.suffix.lower() in ('.yaml', '.yml'):
                    yaml.safe_dump(config_data, f, default_flow_style=False, indent=2)
                else:
                    json.dump(config_data, f, indent=2)
        except IOError as e:
            logger.error(f"Failed to write configuration {output_path}: {e}")
            raise

    @classmethod
    def create_default_config(cls, output_path: str = "config_template.json"):
        """Create a default configuration file template"""
        cls.save_config(cls.config_to_dict(SimulationConfig(random_seed=42)), output_path)
        logger.info(f"Default configuration template created: {output_path}")

    @classmethod
    def validate_config_file(cls, config_path: str) -> bool:
        """
        Validate configuration file without keeping it

        Returns:
            True if valid, False otherwise
        """
        try:
            cls.load_config(config_path)
            return True
        except Exception as e:
            logger.error(f"Configuration validation failed: {e}")
            return False

    @classmethod
    def get_scenario_configs(cls) -> Dict[str, Dict]:
        """Get predefined scenario configurations"""

        scenarios = {
            "corridor": {
                "simulation": {
                    "simulation_time": 60.0,
                    "random_seed": 42,
                    "log_level": "INFO",
                    "output_directory": "results/corridor",
                    "enable_plots": True
                },
                "network": {
                    "num_cells": 3,
                    "cell_spacing": 500.0
                },
                "terminals": {
                    "num_terminals": 4,
                    "terminal_speed": 15.0
                }
            },

            "dense_urban": {
                "simulation": {
                    "simulation_time": 120.0,
                    "random_seed": 123,
                    "log_level": "INFO",
                    "output_directory": "results/dense_urban",
                    "enable_plots": True
                },
                "network": {
                    "num_cells": 6,
                    "cell_spacing": 250.0,
                    "rsrq_path_slope": 0.08,
                    "rsrq_noise_std": 2.0
                },
                "terminals": {
                    "num_terminals": 12,
                    "terminal_speed": 3.0
                },
                "handover": {
                    "time_to_trigger": 0.32,
                    "apply_neighbour_offset": True,
                    "neighbour_cell_offset": 2
                }
            },

            "highway": {
                "simulation": {
                    "simulation_time": 90.0,
                    "random_seed": 456,
                    "log_level": "INFO",
                    "output_directory": "results/highway",
                    "enable_plots": True
                },
                "network": {
                    "num_cells": 5,
                    "cell_spacing": 1000.0,
                    "rsrq_path_slope": 0.02
                },
                "terminals": {
                    "num_terminals": 8,
                    "terminal_speed": 30.0
                },
                "handover": {
                    "time_to_trigger": 0.1,
                    "report_interval": 0.24
                }
            }
        }

        return scenarios

    @classmethod
    def create_scenario_configs(cls, output_dir: str = "scenarios"):
        """Create all predefined scenario configuration files"""
        output_path = Path(output_dir)
        output_path.mkdir(parents=True, exist_ok=True)

        for scenario_name, config in cls.get_scenario_configs().items():
            config_file = output_path / f"{scenario_name}.json"
            try:
                cls.save_config(config, str(config_file))
                logger.info(f"Created scenario config: {config_file}")
            except IOError as e:
                logger.error(f"Failed to create scenario {scenario_name}: {e}")

    @classmethod
    def merge_configs(cls, base_config: Dict, override_config: Dict) -> Dict:
        """
        Merge two configuration dictionaries

        Args:
            base_config: Base configuration
            override_config: Override values

        Returns:
            Merged configuration
        """
        def deep_merge(base: Dict, override: Dict) -> Dict:
            result = base.copy()

            for key, value in override.items():
                if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                    result[key] = deep_merge(result[key], value)
                else:
                    result[key] = value

            return result

        return deep_merge(base_config, override_config)
