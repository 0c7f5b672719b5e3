#!/usr/bin/env python3
"""
Main simulation runner for the QoE/QoS-aware Handover Framework.

This script runs handover simulations with configurable scenarios and
generates results and visualizations.

Usage:
    python run_simulation.py --config scenarios/corridor.json
    python run_simulation.py --scenario highway --results-dir results/highway
    python run_simulation.py --help
"""

import argparse
import logging
import os
import sys
import traceback
from pathlib import Path

from qoe_handover.simulation.engine import SimulationEngine
from qoe_handover.utils.config_parser import ConfigParser

SCENARIOS = sorted(ConfigParser.get_scenario_configs())


def parse_arguments(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description='QoE/QoS-aware Multi-Attribute Handover Simulation',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --config scenarios/corridor.json
  %(prog)s --scenario dense_urban
  %(prog)s --create-scenario highway --config-output scenarios/my_highway.yaml
        """
    )

    # Main execution modes
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument('--config', '-c', type=str,
                       help='Configuration file path (JSON or YAML)')
    group.add_argument('--scenario', '-s', type=str, choices=SCENARIOS,
                       help='Use predefined scenario')
    group.add_argument('--create-scenario', type=str, choices=SCENARIOS,
                       help='Create a new scenario configuration file')

    # Optional parameters
    parser.add_argument('--results-dir', type=str,
                        help='Directory for results and visualizations (overrides config)')
    parser.add_argument('--config-output', type=str,
                        help='Output path for created scenario (used with --create-scenario)')
    parser.add_argument('--no-visualization', action='store_true',
                        help='Disable visualization generation')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Enable verbose output')

    return parser.parse_args(argv)


def setup_logging(level: str, verbose: bool):
    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, level, logging.INFO),
        format='%(asctime)s %(levelname)-8s %(name)s: %(message)s'
    )


def run_simulation_with_config(config, args) -> bool:
    """Run simulation with given configuration."""
    logger = logging.getLogger("run_simulation")

    if args.results_dir:
        config.output_directory = args.results_dir
    if args.no_visualization:
        config.enable_plots = False
    Path(config.output_directory).mkdir(parents=True, exist_ok=True)

    logger.info(f"Cells: {config.num_cells}, terminals: {config.num_terminals}, "
                f"duration: {config.simulation_time}s")
    logger.info(f"Handover policy: {config.handover}")

    try:
        engine = SimulationEngine(config)
        results = engine.run()

        decision_stats = results['metrics']['decision_statistics']
        handover_stats = results['metrics']['handover_statistics']
        logger.info(f"Evaluations: {decision_stats['total_evaluations']}, "
                    f"triggers: {decision_stats['total_triggers']}")
        if handover_stats:
            logger.info(f"Handovers: {handover_stats['total_handovers']} "
                        f"({handover_stats['success_rate']:.3f} success rate, "
                        f"{handover_stats['ping_pong_handovers']} ping-pong)")

        engine.save_results(results, "simulation_results.json")
        engine.metrics.export_to_csv(config.output_directory)

        if config.enable_plots:
            try:
                from qoe_handover.utils.visualization import NetworkVisualizer
                NetworkVisualizer().create_comprehensive_report(engine.metrics,
                                                                config.output_directory)
            except Exception as e:
                logger.warning(f"Error generating visualizations: {e}")
                if args.verbose:
                    traceback.print_exc()

        return True

    except KeyboardInterrupt:
        logger.warning("Simulation interrupted by user")
        return False
    except Exception as e:
        logger.error(f"Error running simulation: {e}")
        if args.verbose:
            traceback.print_exc()
        return False


def create_scenario_config(scenario: str, args) -> bool:
    """Create a new scenario configuration file."""
    output_file = args.config_output or f"scenarios/{scenario}.json"
    os.makedirs(os.path.dirname(output_file) or '.', exist_ok=True)

    try:
        ConfigParser.save_config(ConfigParser.get_scenario_configs()[scenario], output_file)
        print(f"Configuration created: {output_file}")
        print(f"  python run_simulation.py --config {output_file}")
        return True
    except Exception as e:
        print(f"Error creating configuration: {e}")
        return False


def main(argv=None):
    """Main entry point."""
    args = parse_arguments(argv)

    if args.create_scenario:
        success = create_scenario_config(args.create_scenario, args)
        sys.exit(0 if success else 1)

    try:
        if args.config:
            config = ConfigParser.load_config(args.config)
        else:
            config = ConfigParser._dict_to_config(ConfigParser.get_scenario_configs()[args.scenario])
    except Exception as e:
        print(f"Error loading configuration: {e}")
        sys.exit(1)

    setup_logging(config.log_level, args.verbose)
    success = run_simulation_with_config(config, args)
    sys.exit(0 if success else 1)


if __name__ == '__main__':
    main()
