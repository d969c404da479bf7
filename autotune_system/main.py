"""
Main entry point for the stabilization autotune system
"""

import argparse
import logging
import sys

from . import config
from .autotune_controller import AutotuneController
from .gain_synthesizer import GainSynthesisError, IdentifiedPlant, TuningInputs
from .logging_config import setup_logging
from .presentation import render_report
from .settings_store import JsonSettingsStore, SettingsStoreError
from .system_ident import SystemIdentSource


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Compute roll/pitch stabilization gains from system identification')

    ident = parser.add_argument_group('identification (log domain, as reported by the vehicle)')
    ident.add_argument('--ident-file', type=str, default=None,
                       help='JSON snapshot with "Tau" and "Beta" [roll, pitch, yaw]')
    ident.add_argument('--tau', type=float, default=None,
                       help='ln of the plant time constant')
    ident.add_argument('--beta-roll', type=float, default=None,
                       help='ln of the roll axis gain')
    ident.add_argument('--beta-pitch', type=float, default=None,
                       help='ln of the pitch axis gain')
    ident.add_argument('--beta-yaw', type=float, default=0.0,
                       help='ln of the yaw axis gain (not used for synthesis)')

    damping = config.TUNING_CONFIG['damping']
    noise = config.TUNING_CONFIG['noise']

    tuning = parser.add_argument_group('tuning')
    tuning.add_argument('--damping', type=int, default=damping['default'],
                        help=f"Damping dial, damping ratio x{damping['scale']:g}, "
                             f"typically {damping['min']}-{damping['max']} (default: %(default)s)")
    tuning.add_argument('--noise', type=int, default=noise['default'],
                        help=f"Noise dial, high frequency gain x{noise['scale']:g}, "
                             f"typically {noise['min']}-{noise['max']} (default: %(default)s)")

    output = parser.add_argument_group('output')
    output.add_argument('--apply', action='store_true',
                        help='Commit the computed gains to the settings file')
    output.add_argument('--settings-file', type=str, default=config.STORE_CONFIG['settings_file'],
                        help='Settings JSON file (default: %(default)s)')
    output.add_argument('--analyze', action='store_true',
                        help='Report closed-loop step response and phase margin')
    output.add_argument('--plot', type=str, default=None,
                        help='Save a step response / pole map figure to this path')

    admin = parser.add_mutually_exclusive_group()
    admin.add_argument('--enable-autotune', dest='autotune', action='store_const', const=True,
                       default=None, help='Enable the on-board autotune module')
    admin.add_argument('--disable-autotune', dest='autotune', action='store_const', const=False,
                       help='Disable the on-board autotune module')

    parser.add_argument('--log-dir', type=str, default=config.LOGGING_CONFIG['log_dir'])
    parser.add_argument('--log-level', type=str,
                        default=logging.getLevelName(config.LOGGING_CONFIG['log_level']),
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'])
    return parser


def main(argv=None) -> int:
    """Compute, report and optionally apply stabilization gains"""
    parser = build_parser()
    args = parser.parse_args(argv)

    manual_ident = (args.tau, args.beta_roll, args.beta_pitch)
    if args.ident_file is None and any(v is not None for v in manual_ident) \
            and not all(v is not None for v in manual_ident):
        parser.error('--tau, --beta-roll and --beta-pitch must be given together')

    logger = setup_logging(args.log_dir, getattr(logging, args.log_level),
                           max_bytes=config.LOGGING_CONFIG['max_bytes'],
                           backup_count=config.LOGGING_CONFIG['backup_count'])

    store = JsonSettingsStore(args.settings_file)
    ident_source = SystemIdentSource()

    try:
        if args.ident_file:
            ident_source.load_json(args.ident_file)
        elif args.tau is not None:
            ident_source.update(IdentifiedPlant(tau=args.tau, beta_roll=args.beta_roll,
                                                beta_pitch=args.beta_pitch,
                                                beta_yaw=args.beta_yaw))
    except (OSError, ValueError) as e:
        logger.error(f"Could not load identification: {e}")
        return 1

    controller = AutotuneController(ident_source, store,
                                    tuning=TuningInputs(damping=args.damping, noise=args.noise))

    try:
        if args.autotune is not None:
            controller.set_autotune_enabled(args.autotune)
    except SettingsStoreError as e:
        logger.error(f"Could not update module settings: {e}")
        return 1

    if not ident_source.has_data:
        if args.autotune is not None:
            return 0
        parser.error('identification required: --ident-file or --tau/--beta-roll/--beta-pitch')

    try:
        result = controller.recompute()
    except GainSynthesisError as e:
        logger.error(f"Gain synthesis failed: {e}")
        return 1

    print(render_report(result))

    if args.analyze:
        from .loop_analysis import analyze_design

        summary = analyze_design(result)
        for axis, metrics in summary.items():
            print(f"  {axis.capitalize():<6} stable={metrics['stable']}, "
                  f"PM={metrics['phase_margin']:.1f} deg @ {metrics['crossover_hz']:.2f} Hz, "
                  f"overshoot={metrics['overshoot']:.1f}%, settling={metrics['settling_time']:.3f}s")

    if args.plot:
        from .visualizer import plot_design

        plot_design(result, args.plot)

    if args.apply:
        try:
            controller.commit()
        except (GainSynthesisError, SettingsStoreError) as e:
            logger.error(f"Could not apply stabilization settings: {e}")
            return 1
        print(f"✓ Stabilization settings written to {args.settings_file}")

    return 0


if __name__ == '__main__':
    sys.exit(main())
