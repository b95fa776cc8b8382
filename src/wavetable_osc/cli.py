#!/usr/bin/env python3
"""
Command line entry point: play a wavetable sine tone at a given frequency.

    wavetable-osc 440
    wavetable-osc 220 --truncate --duration 2
    WAVETABLE_BUFFER_SIZE=512 wavetable-osc 330 --forever
"""

import argparse
import sys
from typing import List, Optional

from .config import AudioConfig
from .engine import WavetableEngine, list_devices
from .errors import AudioError


def _device_arg(value: str):
    try:
        return int(value)
    except ValueError:
        return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='wavetable-osc',
        description='Wavetable oscillator - sine tone on the default output device',
    )
    parser.add_argument('frequency', type=float, nargs='?',
                        help='Target frequency in Hz')
    parser.add_argument('--amplitude', type=float,
                        help='Linear gain 0..1 (default 0.5)')
    duration = parser.add_mutually_exclusive_group()
    duration.add_argument('--duration', type=float,
                          help='Seconds to play (default 4)')
    duration.add_argument('--forever', action='store_true',
                          help='Play until interrupted with Ctrl+C')
    parser.add_argument('--table-length', type=int,
                        help='Samples per wavetable cycle (default 1024)')
    parser.add_argument('--sample-rate', type=int,
                        help='Output sample rate in Hz (default 44100)')
    parser.add_argument('--buffer-size', type=int,
                        help='Frames per audio callback (default 256)')
    parser.add_argument('--channels', type=int,
                        help='Output channels (default 2)')
    parser.add_argument('--truncate', action='store_true',
                        help='Read the table by truncation instead of linear interpolation')
    parser.add_argument('--phase', type=float,
                        help='Initial phase as a fraction of one cycle [0, 1)')
    parser.add_argument('--device', type=_device_arg,
                        help='Output device index or name substring')
    parser.add_argument('--list-devices', action='store_true',
                        help='List audio devices and exit')
    parser.add_argument('--show-config', action='store_true',
                        help='Print the resolved configuration before playing')
    parser.add_argument('--verbose', action='store_true',
                        help='Print device and engine details')
    return parser


def config_from_args(args: argparse.Namespace) -> AudioConfig:
    """Environment defaults, overridden by whatever was given on the command line."""
    overrides = {
        'frequency': args.frequency,
        'amplitude': args.amplitude,
        'duration': args.duration,
        'table_length': args.table_length,
        'sample_rate': args.sample_rate,
        'buffer_size': args.buffer_size,
        'channels': args.channels,
        'initial_phase': args.phase,
        'device': args.device,
    }
    overrides = {k: v for k, v in overrides.items() if v is not None}
    if args.forever:
        overrides['duration'] = None
    if args.truncate:
        overrides['interpolation'] = 'truncate'
    if args.verbose:
        overrides['verbose'] = True
    return AudioConfig.from_env(**overrides).validate()


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.list_devices:
        try:
            print(list_devices())
        except AudioError as e:
            print(f"Error: {e}", file=sys.stderr)
            return e.exit_status
        return 0

    if args.frequency is None:
        parser.error("the following arguments are required: frequency")

    try:
        config = config_from_args(args)
    except ValueError as e:
        parser.error(str(e))

    if args.show_config:
        config.print_config()

    try:
        engine = WavetableEngine(config)
        print(f"Wavetable oscillator: sine wave, {config.frequency:.2f} Hz.")
        metrics = engine.run(config.duration)
    except AudioError as e:
        print("An error occurred while using the audio stream.", file=sys.stderr)
        print(f"Error number: {e.code if e.code is not None else 'n/a'}", file=sys.stderr)
        print(f"Error message: {e.message}", file=sys.stderr)
        return e.exit_status

    if config.verbose:
        print(metrics)
    print("Finished.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
