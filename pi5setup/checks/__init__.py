"""Verification checks. Importing this package registers every check in suite order."""

# Registration order is run order.
# isort: off
from pi5setup.checks import hardware  # noqa: F401
from pi5setup.checks import audio  # noqa: F401
from pi5setup.checks import zigbee  # noqa: F401
from pi5setup.checks import system  # noqa: F401
from pi5setup.checks import services  # noqa: F401

# isort: on
