#!/usr/bin/env python3
"""
===============================================================================
ASTRODYN - COMMAND-LINE ENTRY POINT
===============================================================================
Quick access to the engine from a shell.

USAGE:
    astrodyn hohmann --mu 3.986004418e14 --r1 6678e3 --r2 42164e3
    astrodyn elements --mu 3.986004418e14 --position 7000e3 0 0 --velocity 0 0 7546
    astrodyn transfer --from earth --to mars
    astrodyn --config config/engine_config.yaml --workers 4 transfer --from earth --to mars

Positions and velocities are given in the world frame (Y up).
===============================================================================
"""

import argparse
import logging
import sys
import time
from dataclasses import replace
from typing import List, Optional

from astrodyn import __version__
from astrodyn.core.config import EngineConfig, load_config
from astrodyn.core.constants import ONE_DAY, RAD2DEG
from astrodyn.core.exceptions import AstrodynamicsError
from astrodyn.dynamics.bodies import (
    LOW_EARTH_ORBIT_ALTITUDE,
    SOLAR_SYSTEM,
    create_solar_system,
    create_spacecraft,
)
from astrodyn.dynamics.orbit import OrbitPosition
from astrodyn.dynamics.state import ObjectState, make_body
from astrodyn.guidance.hohmann import HohmannTransferOrbit
from astrodyn.guidance.planetary_transfer import interplanetary_transfer

logger = logging.getLogger('astrodyn')

_PLANETS = sorted(data.name.lower() for data in SOLAR_SYSTEM
                  if data.primary is not None and data.primary.lower() == 'sun')


def _print_header(title: str) -> None:
    print("=" * 70)
    print(f"  {title}")
    print("=" * 70)


# ---------------------------------------------------------------------------
# Subcommands
# ---------------------------------------------------------------------------
def run_hohmann(args: argparse.Namespace, config: EngineConfig) -> None:
    burns = HohmannTransferOrbit.calculate_burn(args.mu, args.r1, args.r2)
    _print_header("HOHMANN TRANSFER")
    print(f"  r1           : {args.r1:.1f} m")
    print(f"  r2           : {args.r2:.1f} m")
    print(f"  First burn   : {burns.first_burn:.3f} m/s")
    print(f"  Second burn  : {burns.second_burn:.3f} m/s")
    print(f"  Total        : {burns.total:.3f} m/s")
    print(f"  Coast time   : {burns.coast_time:.1f} s ({burns.coast_time / ONE_DAY:.3f} days)")


def run_elements(args: argparse.Namespace, config: EngineConfig) -> None:
    primary = make_body('Primary', args.mu)
    state = ObjectState(position=args.position, velocity=args.velocity)
    orbit_position = OrbitPosition.from_state(primary, primary.state, state)
    orbit = orbit_position.orbit

    _print_header("ORBITAL ELEMENTS")
    print(f"  Type                 : {orbit.type.value}")
    print(f"  Parameter            : {orbit.parameter:.3f} m")
    print(f"  Semi-major axis      : {orbit.semi_major_axis:.3f} m")
    print(f"  Eccentricity         : {orbit.eccentricity:.6f}")
    print(f"  Inclination          : {orbit.inclination * RAD2DEG:.6f} deg")
    print(f"  Ascending node       : {orbit.longitude_of_ascending_node * RAD2DEG:.6f} deg")
    print(f"  Argument of periapsis: {orbit.argument_of_periapsis * RAD2DEG:.6f} deg")
    print(f"  True anomaly         : {orbit_position.true_anomaly * RAD2DEG:.6f} deg")
    if orbit.is_bound:
        print(f"  Period               : {orbit.period:.3f} s")


def run_transfer(args: argparse.Namespace, config: EngineConfig) -> None:
    if args.origin == args.target:
        raise ValueError("Origin and target planets must differ")

    bodies = create_solar_system()
    spacecraft = create_spacecraft(bodies[args.origin], altitude=args.altitude)
    target = bodies[args.target]

    logger.info("Planning transfer %s -> %s from a %.0f km parking orbit",
                args.origin, args.target, args.altitude / 1e3)
    start = time.time()
    maneuvers, departures = interplanetary_transfer(
        spacecraft, target, config, use_hohmann_heliocentric=args.hohmann_leg,
    )
    logger.info("Transfer planned in %.1f s (%d possible departures)", time.time() - start, len(departures))

    _print_header(f"TRANSFER {args.origin.upper()} -> {args.target.upper()}")
    for index, maneuver in enumerate(maneuvers, start=1):
        dv = maneuver.delta_velocity
        print(f"  Burn {index}: t = {maneuver.time:.1f} s ({maneuver.time / ONE_DAY:.2f} days), "
              f"dv = {maneuver.delta_v:.3f} m/s [{dv[0]:.3f}, {dv[1]:.3f}, {dv[2]:.3f}]")
    print(f"  Total dv: {maneuvers.total_delta_v:.3f} m/s")


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------
def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='astrodyn',
        description='Two-body astrodynamics and maneuver planning',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  astrodyn hohmann --mu 3.986004418e14 --r1 6678e3 --r2 42164e3
  astrodyn elements --mu 3.986004418e14 --position 7000e3 0 0 --velocity 0 0 7546
  astrodyn transfer --from earth --to mars
        """
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    parser.add_argument('--config', type=str, default=None,
                        help='Path to engine config YAML')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Enable debug logging')
    parser.add_argument('--workers', type=int, default=None,
                        help='Worker threads for the grid searches')

    subparsers = parser.add_subparsers(dest='command', required=True)

    hohmann = subparsers.add_parser('hohmann', help='Hohmann transfer burns and coast time')
    hohmann.add_argument('--mu', type=float, required=True, help='Gravitational parameter (m^3/s^2)')
    hohmann.add_argument('--r1', type=float, required=True, help='Initial orbit radius (m)')
    hohmann.add_argument('--r2', type=float, required=True, help='Final orbit radius (m)')
    hohmann.set_defaults(handler=run_hohmann)

    elements = subparsers.add_parser('elements', help='Classical elements of a state vector')
    elements.add_argument('--mu', type=float, required=True, help='Gravitational parameter (m^3/s^2)')
    elements.add_argument('--position', type=float, nargs=3, required=True, metavar=('X', 'Y', 'Z'),
                          help='Position relative to the primary (m)')
    elements.add_argument('--velocity', type=float, nargs=3, required=True, metavar=('VX', 'VY', 'VZ'),
                          help='Velocity relative to the primary (m/s)')
    elements.set_defaults(handler=run_elements)

    transfer = subparsers.add_parser('transfer', help='Planetary transfer from a parking orbit')
    transfer.add_argument('--from', dest='origin', choices=_PLANETS, default='earth',
                          help='Planet of the parking orbit (default: earth)')
    transfer.add_argument('--to', dest='target', choices=_PLANETS, required=True,
                          help='Destination planet')
    transfer.add_argument('--altitude', type=float, default=LOW_EARTH_ORBIT_ALTITUDE,
                          help='Parking orbit altitude (m)')
    transfer.add_argument('--hohmann-leg', action='store_true',
                          help='Estimate the heliocentric leg with a Hohmann transfer')
    transfer.set_defaults(handler=run_transfer)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point. Parses command line arguments and runs the requested
    subcommand.

    Returns:
        Process exit code.
    """
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    )

    try:
        config = load_config(args.config)
        if args.workers is not None:
            config = replace(config, intercept=replace(config.intercept, num_workers=args.workers))
        args.handler(args, config)
    except (AstrodynamicsError, ValueError, OSError) as e:
        logger.error("%s failed: %s", args.command, e)
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
