"""Virtual-host resolution and request dispatch."""

from .site import VirtualHost, Site, setup_sites
from .result import Success, Failure, Result
from .runner import AppRunner, Arguments, OutputCapture, ParameterBinders
from .dispatcher import Dispatcher

__all__ = [
    "VirtualHost",
    "Site",
    "setup_sites",
    "Success",
    "Failure",
    "Result",
    "AppRunner",
    "Arguments",
    "OutputCapture",
    "ParameterBinders",
    "Dispatcher",
]
