"""
Command line entry point.

    dumpkeeper run [--debug]          one backup, exit status of the run
    dumpkeeper schedule [--cron EXPR] [--debug]
                                      foreground service on a cron schedule
    dumpkeeper machine-id             print this host's identity
"""

import sys
import argparse
import logging

from dumpkeeper import __version__, configure_logging, close_logging
from dumpkeeper.config import Config, ConfigurationError
from dumpkeeper.identity import resolve_machine_id

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='dumpkeeper',
        description='Dump, compress and ship local MySQL databases to a storage host.'
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    parser.add_argument('--debug', action='store_true', help='echo log lines to the console')

    # Accepted after the command too; SUPPRESS keeps the top-level value when absent
    debug_parent = argparse.ArgumentParser(add_help=False)
    debug_parent.add_argument(
        '--debug', action='store_true', default=argparse.SUPPRESS,
        help='echo log lines to the console'
    )

    subparsers = parser.add_subparsers(dest='command')
    subparsers.add_parser('run', parents=[debug_parent], help='run one backup (default)')

    schedule_parser = subparsers.add_parser(
        'schedule', parents=[debug_parent], help='run backups on a cron schedule'
    )
    schedule_parser.add_argument('--cron', help='crontab expression (default: SCHEDULE_CRON)')

    subparsers.add_parser('machine-id', help="print this host's machine id")

    return parser


def _run(config, args) -> int:
    from dumpkeeper.backup.executor import execute_backup
    return execute_backup(config)


def _schedule(config, args) -> int:
    from dumpkeeper.scheduler import init_scheduler, start_scheduler, stop_scheduler

    try:
        init_scheduler(config, cron=args.cron)
    except ValueError as e:
        logger.error(f"ERROR: invalid schedule: {e}")
        return 1

    try:
        start_scheduler()
    except (KeyboardInterrupt, SystemExit):
        stop_scheduler()
    return 0


def _machine_id(config, args) -> int:
    print(resolve_machine_id(config.uuid_path))
    return 0


COMMANDS = {
    'run': _run,
    'schedule': _schedule,
    'machine-id': _machine_id,
}


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = Config.from_env()
    except ConfigurationError as e:
        print(str(e), file=sys.stderr)
        return 1

    if args.debug:
        config.debug = True

    configure_logging(config)
    try:
        return COMMANDS[args.command or 'run'](config, args)
    finally:
        close_logging()


if __name__ == '__main__':
    sys.exit(main())
