"""
Checks that gate every backup run.
"""

import logging

from dumpkeeper.config import ConfigurationError

logger = logging.getLogger(__name__)

DISALLOWED_HOSTNAMES = ('localhost', '127.0.0.1')


def check_required_settings(config):
    """
    Raises:
        ConfigurationError: If a required setting is empty or TIME_DELTA is invalid
    """
    for name, value in config.required_settings().items():
        if not str(value).strip():
            raise ConfigurationError(f"ERROR {name} environment variable can not be empty")

    # Parsing validates TIME_DELTA
    config.retention_minutes


def check_hostname(hostname: str):
    """
    Raises:
        ConfigurationError: If hostname is one of the disallowed names
    """
    if hostname in DISALLOWED_HOSTNAMES:
        raise ConfigurationError(f'ERROR: hostname: "{hostname}" is not allowed')


def run_preflight(config, context, server):
    """
    Validate settings, hostname and database connectivity, in that order.

    Args:
        config: Config instance
        context: RunContext of the current run
        server: MySQLServer used for the connectivity check

    Raises:
        ConfigurationError: On a missing setting or disallowed hostname
        ConnectivityError: If the connectivity check fails
    """
    check_required_settings(config)
    check_hostname(context.hostname)
    server.check_connection()
    logger.debug(f"Preflight passed for host {context.hostname}")
