# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Exceptions for the configuration layer.

Kept separate so the CLI can catch config failures (and map them to
CONFIG_ERROR) without importing pydantic or the schema.
"""


class ConfigError(Exception):
    """Base for all configuration errors."""


class ConfigLoadError(ConfigError):
    """The config file could not be read from disk or parsed as YAML."""


class ConfigValidationError(ConfigError):
    """
    The config parsed but does not fit the schema: a missing field, a wrong
    type, an unknown key, or an out-of-range value. Also raised when a
    command-line override produces an invalid combination.
    """
