# SPDX-License-Identifier: AGPL-3.0-or-later
"""favget resolves the favicon of a site from a bare URL or domain and caches
the result on disk.

There is a command line for developer purposes and for deeper analysis::

  $ python -m favget --help

"""

from __future__ import annotations

import os
import sys

import logging

import coloredlogs

# Debug
LOG_FORMAT_DEBUG: str = '%(levelname)-7s %(name)-30.30s: %(message)s'

# Production
LOG_FORMAT_PROD: str = '%(asctime)-15s %(levelname)s:%(name)s: %(message)s'
LOG_LEVEL_PROD = logging.WARNING

logger = logging.getLogger('favget')


def init_logging(debug: bool = False):
    """Setup of the root logger, in debug mode the messages are colored when
    the output is a terminal.  The environment ``FAVGET_DEBUG`` switches the
    debug mode on."""

    if debug or os.environ.get('FAVGET_DEBUG', '').lower() in ('1', 'true', 'on'):
        _logging_config_debug()
    else:
        logging.basicConfig(level=LOG_LEVEL_PROD, format=LOG_FORMAT_PROD)
        logging.root.setLevel(level=LOG_LEVEL_PROD)
        logging.getLogger('werkzeug').setLevel(level=LOG_LEVEL_PROD)


def _is_color_terminal():
    if os.getenv('TERM') in ('dumb', 'unknown'):
        return False
    return sys.stdout.isatty()


def _logging_config_debug():
    log_level = os.environ.get('FAVGET_DEBUG_LOG_LEVEL', 'DEBUG')
    if _is_color_terminal():
        level_styles = {
            'spam': {'color': 'green', 'faint': True},
            'debug': {},
            'notice': {'color': 'magenta'},
            'success': {'bold': True, 'color': 'green'},
            'info': {'bold': True, 'color': 'cyan'},
            'warning': {'color': 'yellow'},
            'error': {'color': 'red'},
            'critical': {'bold': True, 'color': 'red'},
        }
        field_styles = {
            'asctime': {'color': 'green'},
            'hostname': {'color': 'magenta'},
            'levelname': {'color': 8},
            'name': {'color': 8},
            'programname': {'color': 'cyan'},
            'username': {'color': 'yellow'},
        }
        coloredlogs.install(
            level=log_level,
            level_styles=level_styles,
            field_styles=field_styles,
            fmt=LOG_FORMAT_DEBUG,
        )
    else:
        logging.basicConfig(level=getattr(logging, log_level, "ERROR"), format=LOG_FORMAT_DEBUG)
